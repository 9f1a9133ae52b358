from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.schemas.common import ListResponse
from app.schemas.payments import (
    ApprovalRequest,
    BulkCollectItem,
    BulkCollectRequest,
    BulkCollectResponse,
    CollectionPaymentCreate,
    CollectionPaymentRead,
    CollectionPaymentUpdate,
    CollectRequest,
    PostponeRequest,
    SupplyConfirmRequest,
    SupplyPaymentCreate,
    SupplyPaymentRead,
    SupplyPaymentUpdate,
)
from app.services import payments as payments_service
from app.services.config_store import grace_period_days

router = APIRouter()


def _collection_read(db: Session, payment, grace_days: int | None = None):
    status_value = payments_service.collection_payments.status_of(db, payment, grace_days)
    return CollectionPaymentRead.model_validate(payment).model_copy(update={"status": status_value})


def _supply_read(payment):
    status_value = payments_service.supply_payments.status_of(payment)
    return SupplyPaymentRead.model_validate(payment).model_copy(update={"status": status_value})


# --- Collection payments ---


@router.post(
    "/collection-payments",
    response_model=CollectionPaymentRead,
    status_code=status.HTTP_201_CREATED,
    tags=["collection-payments"],
)
def create_collection_payment(payload: CollectionPaymentCreate, db: Session = Depends(get_db)):
    payment = payments_service.collection_payments.create(db, payload)
    return _collection_read(db, payment)


@router.get(
    "/collection-payments",
    response_model=ListResponse[CollectionPaymentRead],
    tags=["collection-payments"],
)
def list_collection_payments(
    status: list[str] | None = Query(default=None),
    property_id: str | None = None,
    tenant_id: str | None = None,
    unit_contract_id: str | None = None,
    month_year: str | None = None,
    order_by: str = Query(default="due_date_start"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    response = payments_service.collection_payments.list_response(
        db,
        status,
        property_id,
        tenant_id,
        unit_contract_id,
        month_year,
        order_by,
        order_dir,
        limit,
        offset,
    )
    grace_days = grace_period_days(db)
    response["items"] = [_collection_read(db, item, grace_days) for item in response["items"]]
    return response


@router.get("/collection-payments/status-counts", tags=["collection-payments"])
def collection_status_counts(
    property_id: str | None = None,
    tenant_id: str | None = None,
    db: Session = Depends(get_db),
) -> dict[str, int]:
    return payments_service.collection_payments.status_counts(db, property_id, tenant_id)


@router.get("/collection-payments/summary", tags=["collection-payments"])
def collection_summary(
    property_id: str | None = None,
    tenant_id: str | None = None,
    db: Session = Depends(get_db),
) -> dict:
    return payments_service.collection_payments.summary(db, property_id, tenant_id)


@router.post(
    "/collection-payments/bulk-collect",
    response_model=BulkCollectResponse,
    tags=["collection-payments"],
)
def bulk_collect(payload: BulkCollectRequest, db: Session = Depends(get_db)):
    results = payments_service.collection_payments.bulk_collect(
        db, payload.payment_ids, payload.collected_by, payload.payment_reference
    )
    items = [
        BulkCollectItem(
            payment_id=payment_id,
            success=result.success,
            status=result.status,
            receipt_number=result.payment.receipt_number if result.success else None,
            error_code=result.error.code if result.error else None,
            error=result.error.message if result.error else None,
        )
        for payment_id, result in results
    ]
    succeeded = sum(1 for item in items if item.success)
    return BulkCollectResponse(results=items, succeeded=succeeded, failed=len(items) - succeeded)


@router.get(
    "/collection-payments/{payment_id}",
    response_model=CollectionPaymentRead,
    tags=["collection-payments"],
)
def get_collection_payment(payment_id: str, db: Session = Depends(get_db)):
    payment = payments_service.collection_payments.get(db, payment_id)
    return _collection_read(db, payment)


@router.patch(
    "/collection-payments/{payment_id}",
    response_model=CollectionPaymentRead,
    tags=["collection-payments"],
)
def update_collection_payment(
    payment_id: str, payload: CollectionPaymentUpdate, db: Session = Depends(get_db)
):
    payment = payments_service.collection_payments.update(db, payment_id, payload)
    return _collection_read(db, payment)


@router.delete(
    "/collection-payments/{payment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["collection-payments"],
)
def delete_collection_payment(payment_id: str, db: Session = Depends(get_db)):
    payments_service.collection_payments.delete(db, payment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/collection-payments/{payment_id}/postpone",
    response_model=CollectionPaymentRead,
    tags=["collection-payments"],
)
def postpone_collection_payment(
    payment_id: str, payload: PostponeRequest, db: Session = Depends(get_db)
):
    payment = payments_service.collection_payments.postpone(
        db, payment_id, payload.days, payload.reason
    )
    return _collection_read(db, payment)


@router.post(
    "/collection-payments/{payment_id}/collect",
    response_model=CollectionPaymentRead,
    tags=["collection-payments"],
)
def collect_collection_payment(
    payment_id: str, payload: CollectRequest, db: Session = Depends(get_db)
):
    payment = payments_service.collection_payments.mark_collected(
        db, payment_id, payload.collected_by, payload.payment_reference
    )
    return _collection_read(db, payment)


# --- Supply payments ---


@router.post(
    "/supply-payments",
    response_model=SupplyPaymentRead,
    status_code=status.HTTP_201_CREATED,
    tags=["supply-payments"],
)
def create_supply_payment(payload: SupplyPaymentCreate, db: Session = Depends(get_db)):
    return _supply_read(payments_service.supply_payments.create(db, payload))


@router.get(
    "/supply-payments",
    response_model=ListResponse[SupplyPaymentRead],
    tags=["supply-payments"],
)
def list_supply_payments(
    status: list[str] | None = Query(default=None),
    property_contract_id: str | None = None,
    owner_id: str | None = None,
    approval_status: str | None = None,
    order_by: str = Query(default="due_date"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    response = payments_service.supply_payments.list_response(
        db,
        status,
        property_contract_id,
        owner_id,
        approval_status,
        order_by,
        order_dir,
        limit,
        offset,
    )
    response["items"] = [_supply_read(item) for item in response["items"]]
    return response


@router.get("/supply-payments/status-counts", tags=["supply-payments"])
def supply_status_counts(
    property_contract_id: str | None = None,
    owner_id: str | None = None,
    db: Session = Depends(get_db),
) -> dict[str, int]:
    return payments_service.supply_payments.status_counts(db, property_contract_id, owner_id)


@router.get(
    "/supply-payments/{payment_id}",
    response_model=SupplyPaymentRead,
    tags=["supply-payments"],
)
def get_supply_payment(payment_id: str, db: Session = Depends(get_db)):
    return _supply_read(payments_service.supply_payments.get(db, payment_id))


@router.patch(
    "/supply-payments/{payment_id}",
    response_model=SupplyPaymentRead,
    tags=["supply-payments"],
)
def update_supply_payment(
    payment_id: str, payload: SupplyPaymentUpdate, db: Session = Depends(get_db)
):
    return _supply_read(payments_service.supply_payments.update(db, payment_id, payload))


@router.post(
    "/supply-payments/{payment_id}/confirm",
    response_model=SupplyPaymentRead,
    tags=["supply-payments"],
)
def confirm_supply_payment(
    payment_id: str, payload: SupplyConfirmRequest, db: Session = Depends(get_db)
):
    payment = payments_service.supply_payments.confirm(
        db, payment_id, payload.collected_by, payload.bank_transfer_reference
    )
    return _supply_read(payment)


@router.post(
    "/supply-payments/{payment_id}/approve",
    response_model=SupplyPaymentRead,
    tags=["supply-payments"],
)
def approve_supply_payment(
    payment_id: str, payload: ApprovalRequest, db: Session = Depends(get_db)
):
    payment = payments_service.supply_payments.approve(
        db, payment_id, payload.approved_by, payload.notes
    )
    return _supply_read(payment)


@router.post(
    "/supply-payments/{payment_id}/reject",
    response_model=SupplyPaymentRead,
    tags=["supply-payments"],
)
def reject_supply_payment(
    payment_id: str, payload: ApprovalRequest, db: Session = Depends(get_db)
):
    payment = payments_service.supply_payments.reject(
        db, payment_id, payload.approved_by, payload.notes
    )
    return _supply_read(payment)
