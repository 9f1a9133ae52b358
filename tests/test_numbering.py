import uuid
from datetime import date
from decimal import Decimal

import pytest

from app.models.payments import CollectionPayment
from app.models.sequence import DocumentSequence
from app.services import numbering
from app.services.config_store import numbering_config
from app.services.errors import SequenceConflict


def _existing_payment(db_session, number):
    payment = CollectionPayment(
        payment_number=number,
        unit_contract_id=uuid.uuid4(),
        amount=Decimal("10.00"),
        due_date_start=date(2026, 1, 1),
        due_date_end=date(2026, 1, 5),
    )
    db_session.add(payment)
    db_session.commit()
    return payment


def test_numbers_are_formatted_and_sequential(db_session, clock):
    first = numbering.generate_number(db_session, numbering.COLLECTION_PAYMENT, clock=clock)
    second = numbering.generate_number(db_session, numbering.COLLECTION_PAYMENT, clock=clock)
    assert first == "COL-2026-000001"
    assert second == "COL-2026-000002"


def test_sequences_are_independent(db_session, clock):
    numbering.generate_number(db_session, numbering.COLLECTION_PAYMENT, clock=clock)
    assert numbering.generate_number(db_session, numbering.RECEIPT, clock=clock) == "REC-2026-000001"
    assert (
        numbering.generate_number(db_session, numbering.TRANSACTION, clock=clock)
        == "TXN-2026-00000001"
    )


def test_counter_restarts_each_year(db_session, clock):
    numbering.generate_number(db_session, numbering.SUPPLY_PAYMENT, clock=clock)
    clock.advance(days=365)
    assert numbering.generate_number(db_session, numbering.SUPPLY_PAYMENT, clock=clock) == "SUP-2027-000001"
    counters = {
        (row.key, row.sequence, row.year, row.next_value)
        for row in db_session.query(DocumentSequence).all()
    }
    assert counters == {
        ("supply_payment:2026", "supply_payment", 2026, 2),
        ("supply_payment:2027", "supply_payment", 2027, 2),
    }


def test_prefix_and_padding_come_from_settings(db_session, clock):
    numbering_config.set(db_session, "collection_payment_prefix", "RNT")
    numbering_config.set(db_session, "collection_payment_padding", 4)
    assert numbering.generate_number(db_session, numbering.COLLECTION_PAYMENT, clock=clock) == "RNT-2026-0001"


def test_existing_numbers_are_skipped(db_session, clock):
    _existing_payment(db_session, "COL-2026-000001")
    number = numbering.generate_number(
        db_session, numbering.COLLECTION_PAYMENT, CollectionPayment.payment_number, clock=clock
    )
    assert number == "COL-2026-000002"


def test_conflict_after_bounded_attempts(db_session, clock):
    for value in range(1, numbering.MAX_ATTEMPTS + 1):
        _existing_payment(db_session, f"COL-2026-{value:06d}")
    with pytest.raises(SequenceConflict) as exc:
        numbering.generate_number(
            db_session, numbering.COLLECTION_PAYMENT, CollectionPayment.payment_number, clock=clock
        )
    assert exc.value.retryable is True
    assert exc.value.details["attempts"] == numbering.MAX_ATTEMPTS


def test_duplicate_on_commit_is_a_sequence_conflict(db_session):
    _existing_payment(db_session, "COL-2026-000009")
    duplicate = CollectionPayment(
        payment_number="COL-2026-000009",
        unit_contract_id=uuid.uuid4(),
        amount=Decimal("10.00"),
        due_date_start=date(2026, 2, 1),
        due_date_end=date(2026, 2, 5),
    )
    db_session.add(duplicate)
    with pytest.raises(SequenceConflict):
        numbering.commit_numbered(db_session, numbering.COLLECTION_PAYMENT, "COL-2026-000009")
    assert db_session.query(CollectionPayment).count() == 1


def test_parse_and_validate_numbers():
    assert numbering.parse_number("COL-2026-000042") == ("COL", 2026, 42)
    assert numbering.parse_number("COL2026000042") is None
    assert numbering.parse_number(None) is None
    assert numbering.is_valid_number("TXN-2026-00000001", padding=8)
    assert not numbering.is_valid_number("TXN-2026-0001", padding=8)
    assert not numbering.is_valid_number("bad")
