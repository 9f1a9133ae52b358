"""Document numbers of the form ``{PREFIX}-{YEAR}-{sequence}``.

Each (sequence, year) pair owns one ``document_sequences`` row. The row is
created idempotently, locked with ``SELECT ... FOR UPDATE`` and incremented
inside the caller's transaction, so concurrent writers serialize on the lock
and the counter restarts at 1 every calendar year.
"""

import logging
import re
from dataclasses import dataclass

from sqlalchemy import exists
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.sequence import DocumentSequence, sequence_key
from app.services.clock import Clock, system_clock
from app.services.config_store import numbering_config
from app.services.errors import SequenceConflict

logger = logging.getLogger(__name__)

COLLECTION_PAYMENT = "collection_payment"
SUPPLY_PAYMENT = "supply_payment"
RECEIPT = "receipt"
TRANSACTION = "transaction"

MAX_ATTEMPTS = 5

_NUMBER_RE = re.compile(r"^(?P<prefix>[A-Za-z0-9]+)-(?P<year>\d{4})-(?P<seq>\d+)$")


@dataclass(frozen=True)
class NumberFormat:
    prefix: str
    padding: int

    def render(self, year: int, value: int) -> str:
        return f"{self.prefix}-{year}-{value:0{self.padding}d}"


def number_format(db: Session, sequence: str) -> NumberFormat:
    values = numbering_config.get_many(db, [f"{sequence}_prefix", f"{sequence}_padding"])
    return NumberFormat(
        prefix=values[f"{sequence}_prefix"],
        padding=int(values[f"{sequence}_padding"]),
    )


def _ensure_counter(db: Session, sequence: str, year: int) -> str:
    key = sequence_key(sequence, year)
    values = {"key": key, "sequence": sequence, "year": year, "next_value": 1}
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(DocumentSequence).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite_insert(DocumentSequence).values(**values)
    else:
        found = db.query(DocumentSequence.id).filter(DocumentSequence.key == key).first()
        if not found:
            db.add(DocumentSequence(**values))
            db.flush()
        return key
    db.execute(stmt.on_conflict_do_nothing(index_elements=["key"]))
    return key


def _next_sequence_value(db: Session, sequence: str, year: int) -> int:
    key = _ensure_counter(db, sequence, year)
    counter = (
        db.query(DocumentSequence)
        .filter(DocumentSequence.key == key)
        .with_for_update()
        .populate_existing()
        .one()
    )
    value = counter.next_value
    counter.next_value = value + 1
    db.flush()
    return value


def _number_taken(db: Session, column, number: str) -> bool:
    return bool(db.query(exists().where(column == number)).scalar())


def generate_number(
    db: Session,
    sequence: str,
    column=None,
    year: int | None = None,
    clock: Clock | None = None,
) -> str:
    """Reserve the next number for ``sequence``.

    When ``column`` is given, numbers already present in it are skipped; after
    ``MAX_ATTEMPTS`` taken numbers in a row ``SequenceConflict`` is raised.
    """
    year = year or (clock or system_clock).today().year
    fmt = number_format(db, sequence)
    number = None
    for _ in range(MAX_ATTEMPTS):
        number = fmt.render(year, _next_sequence_value(db, sequence, year))
        if column is None or not _number_taken(db, column, number):
            logger.info("Allocated %s number %s", sequence, number)
            return number
        logger.warning("%s number %s already in use; skipping", sequence, number)
    raise SequenceConflict(sequence, number, MAX_ATTEMPTS)


def commit_numbered(db: Session, sequence: str, number: str | None) -> None:
    """Commit, surfacing a unique-number collision as a retryable conflict."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Commit failed for %s number %s: %s", sequence, number, exc.orig)
        raise SequenceConflict(sequence, number) from exc


def flush_numbered(db: Session, sequence: str, number: str | None) -> None:
    """Like ``commit_numbered`` but leaves the transaction open on success."""
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Flush failed for %s number %s: %s", sequence, number, exc.orig)
        raise SequenceConflict(sequence, number) from exc


def parse_number(value: str | None) -> tuple[str, int, int] | None:
    if not value:
        return None
    match = _NUMBER_RE.match(value)
    if not match:
        return None
    return match.group("prefix"), int(match.group("year")), int(match.group("seq"))


def is_valid_number(value: str | None, padding: int | None = None) -> bool:
    parsed = parse_number(value)
    if parsed is None:
        return False
    if padding is not None:
        return len(value.rsplit("-", 1)[1]) == padding
    return True
