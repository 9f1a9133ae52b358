"""Owner payouts: commission, confirmation and approval."""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.payments import ApprovalStatus, SupplyPayment, SupplyStatus
from app.schemas.payments import SupplyPaymentCreate, SupplyPaymentUpdate
from app.services import numbering
from app.services.clock import Clock, system_clock
from app.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    get_or_404,
    validate_enum,
)
from app.services.config_store import supply_config
from app.services.errors import IllegalTransition, SequenceConflict
from app.services.ledger import TransactionRecorder, transaction_recorder
from app.services.payments.guard import TransitionGuard, transition_guard
from app.services.payments.status import (
    SUPPLY_RULES,
    supply_status,
    supply_status_clause,
    supply_statuses_clause,
)
from app.services.payments.totals import FeeCalculator, fee_calculator
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

NOT_FOUND = "Supply payment not found"

_MONEY_FIELDS = {
    "gross_amount",
    "commission_rate",
    "commission_amount",
    "maintenance_deduction",
    "other_deductions",
    "due_date",
}


def _status_values(status) -> list[SupplyStatus]:
    if status is None:
        return []
    values = [status] if isinstance(status, (str, SupplyStatus)) else list(status)
    return [validate_enum(value, SupplyStatus, "status") for value in values]


class SupplyPayments(ListResponseMixin):
    """Owner payout service.

    ``calculator`` prices default commissions only. ``net_amount`` is derived
    on every flush by the mapper events through the module-level
    ``totals.fee_calculator``; replace that instance to change net policy.
    """

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

    def status_of(self, payment: SupplyPayment) -> SupplyStatus:
        return supply_status(payment, self.clock.today())

    def _lock(self, db: Session, payment_id: str) -> SupplyPayment:
        return get_or_404(
            db,
            SupplyPayment,
            payment_id,
            NOT_FOUND,
            with_for_update=True,
            populate_existing=True,
        )

    def _reject(self, db: Session, error: IllegalTransition) -> None:
        db.rollback()
        logger.warning(
            "Rejected %s on supply payment %s: %s",
            error.action,
            error.details.get("record_id"),
            error.reason,
        )
        raise error

    def create(self, db: Session, payload: SupplyPaymentCreate):
        data = payload.model_dump()
        rate = data.pop("commission_rate")
        if rate is None:
            rate = supply_config.get(db, "default_commission_rate")
        commission = data.pop("commission_amount")
        if commission is None:
            commission = self.calculator.calculate_commission(data["gross_amount"], rate)
        payment = SupplyPayment(**data, commission_rate=rate, commission_amount=commission)
        try:
            payment.payment_number = numbering.generate_number(
                db,
                numbering.SUPPLY_PAYMENT,
                SupplyPayment.payment_number,
                clock=self.clock,
            )
        except SequenceConflict:
            db.rollback()
            raise
        db.add(payment)
        numbering.commit_numbered(db, numbering.SUPPLY_PAYMENT, payment.payment_number)
        db.refresh(payment)
        logger.info("Created supply payment %s", payment.payment_number)
        return payment

    def get(self, db: Session, payment_id: str):
        return get_or_404(db, SupplyPayment, payment_id, NOT_FOUND)

    def list(
        self,
        db: Session,
        status=None,
        property_contract_id: str | None = None,
        owner_id: str | None = None,
        approval_status: str | None = None,
        order_by: str = "due_date",
        order_dir: str = "asc",
        limit: int = 50,
        offset: int = 0,
    ):
        query = self._filtered(db, property_contract_id, owner_id)
        if approval_status:
            query = query.filter(
                SupplyPayment.approval_status
                == validate_enum(approval_status, ApprovalStatus, "approval_status")
            )
        statuses = _status_values(status)
        if statuses:
            query = query.filter(supply_statuses_clause(statuses, self.clock.today()))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": SupplyPayment.created_at,
                "due_date": SupplyPayment.due_date,
                "payment_number": SupplyPayment.payment_number,
                "net_amount": SupplyPayment.net_amount,
            },
        )
        return apply_pagination(query, limit, offset).all()

    def _filtered(self, db, property_contract_id=None, owner_id=None):
        query = db.query(SupplyPayment)
        if property_contract_id:
            query = query.filter(
                SupplyPayment.property_contract_id == coerce_uuid(property_contract_id)
            )
        if owner_id:
            query = query.filter(SupplyPayment.owner_id == coerce_uuid(owner_id))
        return query

    def update(self, db: Session, payment_id: str, payload: SupplyPaymentUpdate):
        payment = self._lock(db, payment_id)
        data = payload.model_dump(exclude_unset=True)
        for field in ("gross_amount", "maintenance_deduction", "other_deductions", "due_date"):
            if field in data and data[field] is None:
                data.pop(field)
        if payment.paid_date is not None and _MONEY_FIELDS & data.keys():
            self._reject(
                db,
                IllegalTransition("update", "amounts of a supplied payment are final", payment.id, "collected"),
            )
        rate_changed = "gross_amount" in data or "commission_rate" in data
        if data.get("commission_rate") is None:
            data.pop("commission_rate", None)
        for key, value in data.items():
            setattr(payment, key, value)
        if rate_changed and data.get("commission_amount") is None:
            payment.commission_amount = self.calculator.calculate_commission(
                payment.gross_amount, payment.commission_rate
            )
        db.commit()
        db.refresh(payment)
        return payment

    def pending_previous(self, db: Session, payment: SupplyPayment) -> list[SupplyPayment]:
        return (
            db.query(SupplyPayment)
            .filter(SupplyPayment.property_contract_id == payment.property_contract_id)
            .filter(SupplyPayment.id != payment.id)
            .filter(SupplyPayment.due_date < payment.due_date)
            .filter(SupplyPayment.paid_date.is_(None))
            .order_by(SupplyPayment.due_date.asc())
            .all()
        )

    def confirm(
        self,
        db: Session,
        payment_id: str,
        collected_by: str | None = None,
        bank_transfer_reference: str | None = None,
    ):
        collected_by = coerce_uuid(collected_by)
        payment = self._lock(db, payment_id)
        try:
            self.guard.ensure_can_confirm_supply(payment)
        except IllegalTransition as exc:
            self._reject(db, exc)
        if supply_config.get(db, "require_sequential_confirmation"):
            earlier = self.pending_previous(db, payment)
            if earlier:
                error = IllegalTransition(
                    "confirm",
                    "earlier installments of this contract are not supplied yet",
                    payment.id,
                    self.status_of(payment).value,
                )
                error.details["pending_payment_numbers"] = [p.payment_number for p in earlier]
                self._reject(db, error)
        payment.paid_date = self.clock.today()
        payment.collected_by = collected_by
        if bank_transfer_reference:
            payment.bank_transfer_reference = bank_transfer_reference
        try:
            entry = self.recorder.record_supply(db, payment)
        except Exception:
            db.rollback()
            raise
        numbering.commit_numbered(db, numbering.TRANSACTION, entry.transaction_number)
        db.refresh(payment)
        if payment.net_amount <= 0:
            logger.info(
                "Settled supply payment %s with net %s", payment.payment_number, payment.net_amount
            )
        else:
            logger.info(
                "Supplied payment %s, net %s", payment.payment_number, payment.net_amount
            )
        return payment

    def _decide(self, db: Session, payment_id: str, decision: ApprovalStatus, approved_by, notes):
        approved_by = coerce_uuid(approved_by)
        payment = self._lock(db, payment_id)
        action = "approve" if decision == ApprovalStatus.approved else "reject"
        if payment.approval_status != ApprovalStatus.pending:
            self._reject(
                db,
                IllegalTransition(
                    action,
                    f"payment already {payment.approval_status.value}",
                    payment.id,
                    payment.approval_status.value,
                ),
            )
        payment.approval_status = decision
        payment.approved_by = approved_by
        payment.approved_at = self.clock.now()
        if notes:
            payment.notes = f"{payment.notes}\n{notes}" if payment.notes else notes
        db.commit()
        db.refresh(payment)
        logger.info("Supply payment %s %s", payment.payment_number, decision.value)
        return payment

    def approve(self, db: Session, payment_id: str, approved_by: str | None = None, notes: str | None = None):
        return self._decide(db, payment_id, ApprovalStatus.approved, approved_by, notes)

    def reject(self, db: Session, payment_id: str, approved_by: str | None = None, notes: str | None = None):
        return self._decide(db, payment_id, ApprovalStatus.rejected, approved_by, notes)

    def status_counts(
        self,
        db: Session,
        property_contract_id: str | None = None,
        owner_id: str | None = None,
    ) -> dict[str, int]:
        today = self.clock.today()
        return {
            status.value: self._filtered(db, property_contract_id, owner_id)
            .with_entities(func.count(SupplyPayment.id))
            .filter(supply_status_clause(status, today))
            .scalar()
            for status in SUPPLY_RULES.statuses
        }
