import enum
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Enum,
    Integer,
    Numeric,
    String,
    Text,
    event,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, validates

from app.db import Base


class CollectionStatus(enum.Enum):
    """Derived lifecycle state of a tenant installment. Never stored."""

    collected = "collected"
    postponed = "postponed"
    overdue = "overdue"
    due = "due"
    upcoming = "upcoming"

    @property
    def label(self) -> str:
        return _COLLECTION_LABELS[self]

    @property
    def color(self) -> str:
        return _COLLECTION_COLORS[self]


_COLLECTION_LABELS = {
    CollectionStatus.collected: "Collected",
    CollectionStatus.postponed: "Postponed",
    CollectionStatus.overdue: "Overdue",
    CollectionStatus.due: "Due",
    CollectionStatus.upcoming: "Upcoming",
}

_COLLECTION_COLORS = {
    CollectionStatus.collected: "success",
    CollectionStatus.postponed: "info",
    CollectionStatus.overdue: "danger",
    CollectionStatus.due: "warning",
    CollectionStatus.upcoming: "gray",
}


class SupplyStatus(enum.Enum):
    """Derived state of an owner payout. Never stored."""

    collected = "collected"
    worth_collecting = "worth_collecting"
    pending = "pending"

    @property
    def label(self) -> str:
        return _SUPPLY_LABELS[self]

    @property
    def color(self) -> str:
        return _SUPPLY_COLORS[self]


_SUPPLY_LABELS = {
    SupplyStatus.collected: "Supplied",
    SupplyStatus.worth_collecting: "Ready to supply",
    SupplyStatus.pending: "Pending",
}

_SUPPLY_COLORS = {
    SupplyStatus.collected: "success",
    SupplyStatus.worth_collecting: "info",
    SupplyStatus.pending: "warning",
}


class ApprovalStatus(enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class _ImmutableNumberMixin:
    @validates("payment_number")
    def _validate_payment_number(self, key, value):
        current = getattr(self, key, None)
        if current and value != current:
            raise ValueError(f"{key} is immutable once set")
        return value


class CollectionPayment(_ImmutableNumberMixin, Base):
    __tablename__ = "collection_payments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    payment_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    receipt_number: Mapped[str | None] = mapped_column(String(50), unique=True)

    # Owned by the contracts module; referenced, not enforced here.
    unit_contract_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    unit_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    property_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), index=True)
    tenant_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), index=True)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    late_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))

    due_date_start: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    due_date_end: Mapped[date] = mapped_column(Date, nullable=False)
    paid_date: Mapped[date | None] = mapped_column(Date)
    collection_date: Mapped[date | None] = mapped_column(Date)
    collected_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))

    delay_duration: Mapped[int | None] = mapped_column(Integer)
    delay_reason: Mapped[str | None] = mapped_column(Text)
    late_payment_notes: Mapped[str | None] = mapped_column(Text)
    payment_reference: Mapped[str | None] = mapped_column(String(100))
    month_year: Mapped[str | None] = mapped_column(String(7), index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class SupplyPayment(_ImmutableNumberMixin, Base):
    __tablename__ = "supply_payments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    payment_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    property_contract_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True
    )
    owner_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), index=True)

    gross_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    commission_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0.00"))
    maintenance_deduction: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00")
    )
    other_deductions: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    net_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))

    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    paid_date: Mapped[date | None] = mapped_column(Date)
    collected_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))

    approval_status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus), default=ApprovalStatus.pending
    )
    approved_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    bank_transfer_reference: Mapped[str | None] = mapped_column(String(120))
    invoice_details: Mapped[dict | None] = mapped_column(JSON(none_as_null=True))
    deduction_details: Mapped[dict | None] = mapped_column(JSON(none_as_null=True))
    month_year: Mapped[str | None] = mapped_column(String(7), index=True)
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


# Stored totals are derived on every flush, whichever code path wrote the row.


@event.listens_for(CollectionPayment, "before_insert")
@event.listens_for(CollectionPayment, "before_update")
def _derive_collection_totals(mapper, connection, target: CollectionPayment) -> None:
    from app.services.payments.totals import recalculate_collection_totals

    recalculate_collection_totals(target)


@event.listens_for(SupplyPayment, "before_insert")
@event.listens_for(SupplyPayment, "before_update")
def _derive_supply_totals(mapper, connection, target: SupplyPayment) -> None:
    from app.services.payments.totals import recalculate_supply_totals

    recalculate_supply_totals(target)
