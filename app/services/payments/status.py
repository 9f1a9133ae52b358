"""Status of collection and supply payments, derived from dates and flags.

Postponement is visible before the due date: a postponed installment reports
``postponed`` and is returned by the ``postponed`` filter whatever its
``due_date_start``, and is therefore never ``upcoming``.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime

from app.models.payments import CollectionPayment, CollectionStatus, SupplyPayment, SupplyStatus
from app.services.errors import InvalidConfiguration
from app.services.payments.status_rules import (
    DateBefore,
    DateOnOrBefore,
    IsPositive,
    IsSet,
    StatusContext,
    StatusRule,
    StatusRuleTable,
    as_date,
    overdue_cutoff,
    today,
)

COLLECTION_RULES = StatusRuleTable(
    CollectionPayment,
    rules=[
        StatusRule(CollectionStatus.collected, (IsSet("collection_date"),)),
        StatusRule(CollectionStatus.postponed, (IsPositive("delay_duration"),)),
        StatusRule(CollectionStatus.overdue, (DateBefore("due_date_start", overdue_cutoff),)),
        StatusRule(CollectionStatus.due, (DateOnOrBefore("due_date_start", today),)),
    ],
    default=CollectionStatus.upcoming,
)

SUPPLY_RULES = StatusRuleTable(
    SupplyPayment,
    rules=[
        StatusRule(SupplyStatus.collected, (IsSet("paid_date"),)),
        StatusRule(SupplyStatus.worth_collecting, (DateOnOrBefore("due_date", today),)),
    ],
    default=SupplyStatus.pending,
)


def _context(at: date | datetime, grace_days: int = 0) -> StatusContext:
    if isinstance(grace_days, bool) or not isinstance(grace_days, int):
        raise InvalidConfiguration("collections.payment_due_days", "Value must be an integer", grace_days)
    if grace_days < 0:
        raise InvalidConfiguration("collections.payment_due_days", "Value cannot be negative", grace_days)
    return StatusContext(today=as_date(at), grace_days=grace_days)


def collection_status(record, at: date | datetime, grace_days: int) -> CollectionStatus:
    return COLLECTION_RULES.evaluate(record, _context(at, grace_days))


def collection_status_clause(status: CollectionStatus | str, at: date | datetime, grace_days: int):
    return COLLECTION_RULES.clause(CollectionStatus(status), _context(at, grace_days))


def collection_statuses_clause(
    statuses: Iterable[CollectionStatus | str], at: date | datetime, grace_days: int
):
    return COLLECTION_RULES.clause_for_statuses(
        [CollectionStatus(status) for status in statuses], _context(at, grace_days)
    )


def supply_status(record, at: date | datetime) -> SupplyStatus:
    return SUPPLY_RULES.evaluate(record, _context(at))


def supply_status_clause(status: SupplyStatus | str, at: date | datetime):
    return SUPPLY_RULES.clause(SupplyStatus(status), _context(at))


def supply_statuses_clause(statuses: Iterable[SupplyStatus | str], at: date | datetime):
    return SUPPLY_RULES.clause_for_statuses(
        [SupplyStatus(status) for status in statuses], _context(at)
    )
