"""Tenant installments: creation, status filters and transitions."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.payments import CollectionPayment, CollectionStatus
from app.schemas.payments import CollectionPaymentCreate, CollectionPaymentUpdate
from app.services import numbering
from app.services.clock import Clock, system_clock
from app.services.common import (
    ZERO,
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    get_or_404,
    round_money,
    validate_enum,
)
from app.services.config_store import collections_config, grace_period_days
from app.services.errors import IllegalTransition, PaymentEngineError, RecordNotFound, SequenceConflict
from app.services.ledger import TransactionRecorder, transaction_recorder
from app.services.payments.guard import TransitionGuard, TransitionResult, transition_guard
from app.services.payments.status import (
    COLLECTION_RULES,
    collection_status,
    collection_status_clause,
    collection_statuses_clause,
)
from app.services.payments.totals import FeeCalculator, fee_calculator
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

NOT_FOUND = "Collection payment not found"

# Fields a settled installment keeps as recorded in the ledger.
_SETTLED_FIELDS = {"amount", "late_fee", "due_date_start", "due_date_end"}
_REQUIRED_FIELDS = {"amount", "due_date_start", "due_date_end"}


def _status_values(status) -> list[CollectionStatus]:
    if status is None:
        return []
    values = [status] if isinstance(status, (str, CollectionStatus)) else list(status)
    return [validate_enum(value, CollectionStatus, "status") for value in values]


class CollectionPayments(ListResponseMixin):
    def __init__(
        self,
        clock: Clock | None = None,
        recorder: TransactionRecorder | None = None,
        guard: TransitionGuard | None = None,
        calculator: FeeCalculator | None = None,
    ) -> None:
        self.clock = clock or system_clock
        self.recorder = recorder or transaction_recorder
        self.guard = guard or transition_guard
        self.calculator = calculator or fee_calculator

    def status_of(self, db: Session, payment: CollectionPayment, grace_days: int | None = None):
        if grace_days is None:
            grace_days = grace_period_days(db)
        return collection_status(payment, self.clock.today(), grace_days)

    def _lock(self, db: Session, payment_id: str) -> CollectionPayment:
        return get_or_404(
            db,
            CollectionPayment,
            payment_id,
            NOT_FOUND,
            with_for_update=True,
            populate_existing=True,
        )

    def _reject(self, db: Session, error: IllegalTransition) -> None:
        db.rollback()
        logger.warning("Rejected %s on collection payment %s: %s", error.action, error.details.get("record_id"), error.reason)
        raise error

    def create(self, db: Session, payload: CollectionPaymentCreate):
        payment = CollectionPayment(**payload.model_dump())
        try:
            payment.payment_number = numbering.generate_number(
                db,
                numbering.COLLECTION_PAYMENT,
                CollectionPayment.payment_number,
                clock=self.clock,
            )
        except SequenceConflict:
            db.rollback()
            raise
        db.add(payment)
        numbering.commit_numbered(db, numbering.COLLECTION_PAYMENT, payment.payment_number)
        db.refresh(payment)
        logger.info("Created collection payment %s", payment.payment_number)
        return payment

    def get(self, db: Session, payment_id: str):
        return get_or_404(db, CollectionPayment, payment_id, NOT_FOUND)

    def list(
        self,
        db: Session,
        status=None,
        property_id: str | None = None,
        tenant_id: str | None = None,
        unit_contract_id: str | None = None,
        month_year: str | None = None,
        order_by: str = "due_date_start",
        order_dir: str = "asc",
        limit: int = 50,
        offset: int = 0,
    ):
        query = self._filtered(db, property_id, tenant_id, unit_contract_id, month_year)
        statuses = _status_values(status)
        if statuses:
            query = query.filter(
                collection_statuses_clause(statuses, self.clock.today(), grace_period_days(db))
            )
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": CollectionPayment.created_at,
                "due_date_start": CollectionPayment.due_date_start,
                "payment_number": CollectionPayment.payment_number,
                "total_amount": CollectionPayment.total_amount,
            },
        )
        return apply_pagination(query, limit, offset).all()

    def _filtered(self, db, property_id=None, tenant_id=None, unit_contract_id=None, month_year=None):
        query = db.query(CollectionPayment)
        if property_id:
            query = query.filter(CollectionPayment.property_id == coerce_uuid(property_id))
        if tenant_id:
            query = query.filter(CollectionPayment.tenant_id == coerce_uuid(tenant_id))
        if unit_contract_id:
            query = query.filter(CollectionPayment.unit_contract_id == coerce_uuid(unit_contract_id))
        if month_year:
            query = query.filter(CollectionPayment.month_year == month_year)
        return query

    def update(self, db: Session, payment_id: str, payload: CollectionPaymentUpdate):
        payment = self._lock(db, payment_id)
        data = payload.model_dump(exclude_unset=True)
        for field in _REQUIRED_FIELDS:
            if field in data and data[field] is None:
                data.pop(field)
        if payment.collection_date is not None and _SETTLED_FIELDS & data.keys():
            self._reject(
                db,
                IllegalTransition("update", "amounts and dates of a collected payment are final", payment.id, "collected"),
            )
        start = data.get("due_date_start", payment.due_date_start)
        end = data.get("due_date_end", payment.due_date_end)
        if end < start:
            db.rollback()
            raise HTTPException(status_code=400, detail="due_date_end must not be before due_date_start")
        for key, value in data.items():
            setattr(payment, key, value)
        db.commit()
        db.refresh(payment)
        return payment

    def delete(self, db: Session, payment_id: str):
        payment = self.get(db, payment_id)
        try:
            self.guard.ensure_deletable(payment)
        except IllegalTransition as exc:
            self._reject(db, exc)

    def postpone(self, db: Session, payment_id: str, days: int, reason: str):
        if isinstance(days, bool) or not isinstance(days, int) or days < 1:
            raise HTTPException(status_code=400, detail="days must be a positive integer")
        payment = self._lock(db, payment_id)
        try:
            self.guard.ensure_can_postpone(payment)
        except IllegalTransition as exc:
            self._reject(db, exc)
        payment.delay_duration = days
        payment.delay_reason = reason
        db.commit()
        db.refresh(payment)
        logger.info("Postponed collection payment %s by %s days", payment.payment_number, days)
        return payment

    def mark_collected(
        self,
        db: Session,
        payment_id: str,
        collected_by: str | None = None,
        payment_reference: str | None = None,
    ):
        collected_by = coerce_uuid(collected_by)
        payment = self._lock(db, payment_id)
        try:
            self.guard.ensure_can_collect(payment)
        except IllegalTransition as exc:
            self._reject(db, exc)
        try:
            receipt_number = numbering.generate_number(
                db, numbering.RECEIPT, CollectionPayment.receipt_number, clock=self.clock
            )
        except SequenceConflict:
            db.rollback()
            raise
        today = self.clock.today()
        payment.receipt_number = receipt_number
        payment.collection_date = today
        payment.paid_date = today
        payment.collected_by = collected_by
        if payment_reference:
            payment.payment_reference = payment_reference
        try:
            self.recorder.record_collection(db, payment)
        except Exception:
            db.rollback()
            raise
        numbering.commit_numbered(db, numbering.RECEIPT, receipt_number)
        db.refresh(payment)
        logger.info(
            "Collected payment %s (receipt %s, total %s)",
            payment.payment_number,
            receipt_number,
            payment.total_amount,
        )
        return payment

    def _try(self, db: Session, payment_id: str, operation) -> TransitionResult:
        try:
            payment = operation()
        except PaymentEngineError as exc:
            payment = db.get(CollectionPayment, coerce_uuid(payment_id))
            status = self.status_of(db, payment) if payment else None
            return TransitionResult.failed(exc, payment=payment, status=status)
        return TransitionResult.ok(payment, self.status_of(db, payment))

    def try_postpone(self, db: Session, payment_id: str, days: int, reason: str) -> TransitionResult:
        return self._try(db, payment_id, lambda: self.postpone(db, payment_id, days, reason))

    def try_mark_collected(
        self,
        db: Session,
        payment_id: str,
        collected_by: str | None = None,
        payment_reference: str | None = None,
    ) -> TransitionResult:
        return self._try(
            db,
            payment_id,
            lambda: self.mark_collected(db, payment_id, collected_by, payment_reference),
        )

    def bulk_collect(
        self,
        db: Session,
        payment_ids: list,
        collected_by: str | None = None,
        payment_reference: str | None = None,
    ) -> list[tuple[object, TransitionResult]]:
        results = []
        for payment_id in payment_ids:
            try:
                result = self.try_mark_collected(db, payment_id, collected_by, payment_reference)
            except HTTPException as exc:
                if exc.status_code != 404:
                    raise
                db.rollback()
                result = TransitionResult.failed(RecordNotFound("Collection payment", payment_id))
            results.append((payment_id, result))
        succeeded = sum(1 for _, result in results if result.success)
        logger.info("Bulk collect: %s of %s payments collected", succeeded, len(results))
        return results

    def status_counts(self, db: Session, property_id: str | None = None, tenant_id: str | None = None) -> dict[str, int]:
        today = self.clock.today()
        grace_days = grace_period_days(db)
        counts = {}
        for status in COLLECTION_RULES.statuses:
            counts[status.value] = (
                self._filtered(db, property_id, tenant_id)
                .with_entities(func.count(CollectionPayment.id))
                .filter(collection_status_clause(status, today, grace_days))
                .scalar()
            )
        return counts

    def summary(self, db: Session, property_id: str | None = None, tenant_id: str | None = None) -> dict:
        """Counts and amounts per status, classified row by row."""
        grace_days = grace_period_days(db)
        counts = {status.value: 0 for status in COLLECTION_RULES.statuses}
        amounts = defaultdict(lambda: ZERO)
        for payment in self._filtered(db, property_id, tenant_id).all():
            status = self.status_of(db, payment, grace_days)
            counts[status.value] += 1
            amounts[status.value] = round_money(amounts[status.value] + payment.total_amount)
        total = round_money(sum(amounts.values(), ZERO))
        collected = amounts[CollectionStatus.collected.value]
        return {
            "counts": counts,
            "amounts": {status.value: amounts[status.value] for status in COLLECTION_RULES.statuses},
            "total_amount": total,
            "collected_amount": collected,
            "outstanding_amount": round_money(total - collected),
            "overdue_amount": amounts[CollectionStatus.overdue.value],
        }

    def refresh_late_fees(self, db: Session, today: date | None = None) -> int:
        """Raise late fees on overdue installments; returns how many changed.

        The fee accrues per day past ``due_date_end``. Existing fees are never
        lowered, so a manually entered fee survives the refresh.
        """
        today = today or self.clock.today()
        rate = collections_config.get(db, "late_fee_daily_rate")
        grace_days = grace_period_days(db)
        overdue = (
            db.query(CollectionPayment)
            .filter(collection_status_clause(CollectionStatus.overdue, today, grace_days))
            .with_for_update()
            .all()
        )
        updated = 0
        for payment in overdue:
            days_late = (today - payment.due_date_end).days
            fee = self.calculator.calculate_late_fee(payment.amount, days_late, rate)
            if fee > (payment.late_fee or ZERO):
                payment.late_fee = fee
                updated += 1
        db.commit()
        if updated:
            logger.info("Late fees refreshed on %s overdue payments", updated)
        return updated
