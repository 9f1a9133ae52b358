from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.payments import ApprovalStatus, CollectionStatus, SupplyStatus

MONTH_YEAR_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class CollectionPaymentBase(BaseModel):
    unit_contract_id: UUID
    unit_id: UUID | None = None
    property_id: UUID | None = None
    tenant_id: UUID | None = None
    amount: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    late_fee: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    due_date_start: date
    due_date_end: date
    payment_reference: str | None = Field(default=None, max_length=100)
    late_payment_notes: str | None = None
    month_year: str | None = Field(default=None, pattern=MONTH_YEAR_PATTERN)

    @model_validator(mode="after")
    def _check_due_window(self):
        if self.due_date_end < self.due_date_start:
            raise ValueError("due_date_end must not be before due_date_start")
        return self


class CollectionPaymentCreate(CollectionPaymentBase):
    pass


class CollectionPaymentUpdate(BaseModel):
    unit_id: UUID | None = None
    property_id: UUID | None = None
    tenant_id: UUID | None = None
    amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    late_fee: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    due_date_start: date | None = None
    due_date_end: date | None = None
    payment_reference: str | None = Field(default=None, max_length=100)
    late_payment_notes: str | None = None


class CollectionPaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payment_number: str
    receipt_number: str | None = None
    unit_contract_id: UUID
    unit_id: UUID | None = None
    property_id: UUID | None = None
    tenant_id: UUID | None = None
    amount: Decimal
    late_fee: Decimal | None = None
    total_amount: Decimal
    due_date_start: date
    due_date_end: date
    paid_date: date | None = None
    collection_date: date | None = None
    collected_by: UUID | None = None
    delay_duration: int | None = None
    delay_reason: str | None = None
    late_payment_notes: str | None = None
    payment_reference: str | None = None
    month_year: str | None = None
    status: CollectionStatus | None = None
    created_at: datetime
    updated_at: datetime


class PostponeRequest(BaseModel):
    days: int = Field(ge=1, le=365)
    reason: str = Field(min_length=1, max_length=500)


class CollectRequest(BaseModel):
    collected_by: UUID | None = None
    payment_reference: str | None = Field(default=None, max_length=100)


class BulkCollectRequest(CollectRequest):
    payment_ids: list[UUID] = Field(min_length=1, max_length=500)


class BulkCollectItem(BaseModel):
    payment_id: UUID
    success: bool
    status: CollectionStatus | None = None
    receipt_number: str | None = None
    error_code: str | None = None
    error: str | None = None


class BulkCollectResponse(BaseModel):
    results: list[BulkCollectItem]
    succeeded: int
    failed: int


class SupplyPaymentBase(BaseModel):
    property_contract_id: UUID
    owner_id: UUID | None = None
    gross_amount: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    commission_rate: Decimal | None = Field(default=None, ge=0, le=100, max_digits=5, decimal_places=2)
    commission_amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    maintenance_deduction: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=12, decimal_places=2)
    other_deductions: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=12, decimal_places=2)
    due_date: date
    invoice_details: dict | None = None
    deduction_details: dict | None = None
    month_year: str | None = Field(default=None, pattern=MONTH_YEAR_PATTERN)
    notes: str | None = None


class SupplyPaymentCreate(SupplyPaymentBase):
    pass


class SupplyPaymentUpdate(BaseModel):
    owner_id: UUID | None = None
    gross_amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    commission_rate: Decimal | None = Field(default=None, ge=0, le=100, max_digits=5, decimal_places=2)
    commission_amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    maintenance_deduction: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    other_deductions: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    due_date: date | None = None
    invoice_details: dict | None = None
    deduction_details: dict | None = None
    notes: str | None = None


class SupplyPaymentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payment_number: str
    property_contract_id: UUID
    owner_id: UUID | None = None
    gross_amount: Decimal
    commission_amount: Decimal
    commission_rate: Decimal
    maintenance_deduction: Decimal
    other_deductions: Decimal
    net_amount: Decimal
    due_date: date
    paid_date: date | None = None
    collected_by: UUID | None = None
    approval_status: ApprovalStatus
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    bank_transfer_reference: str | None = None
    invoice_details: dict | None = None
    deduction_details: dict | None = None
    month_year: str | None = None
    notes: str | None = None
    status: SupplyStatus | None = None
    created_at: datetime
    updated_at: datetime


class SupplyConfirmRequest(BaseModel):
    collected_by: UUID | None = None
    bank_transfer_reference: str | None = Field(default=None, max_length=120)


class ApprovalRequest(BaseModel):
    approved_by: UUID | None = None
    notes: str | None = None
