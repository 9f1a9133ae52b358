"""Accounting entries for settled payments.

Entries are flushed into the caller's transaction and never committed here,
so a settlement and its ledger entry are persisted or rolled back together.
"""

import logging

from sqlalchemy.orm import Session

from app.models.ledger import LedgerTransaction, LedgerTransactionType
from app.services import numbering
from app.services.clock import Clock, system_clock
from app.services.common import ZERO, round_money, to_money

logger = logging.getLogger(__name__)


def _str_or_none(value):
    return str(value) if value is not None else None


class TransactionRecorder:
    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or system_clock

    def _record(
        self,
        db: Session,
        transaction_type: LedgerTransactionType,
        source_id,
        property_id,
        debit,
        credit,
        description: str,
        reference_number: str | None,
        meta_data: dict,
    ) -> LedgerTransaction:
        debit = to_money(debit)
        credit = to_money(credit)
        number = numbering.generate_number(
            db,
            numbering.TRANSACTION,
            LedgerTransaction.transaction_number,
            clock=self.clock,
        )
        entry = LedgerTransaction(
            transaction_number=number,
            transaction_type=transaction_type,
            source_id=source_id,
            property_id=property_id,
            debit_amount=debit,
            credit_amount=credit,
            balance=round_money(debit - credit),
            description=description,
            reference_number=reference_number,
            transaction_date=self.clock.today(),
            meta_data=meta_data,
        )
        db.add(entry)
        numbering.flush_numbered(db, numbering.TRANSACTION, number)
        logger.info(
            "Recorded %s %s for %s (debit=%s credit=%s)",
            transaction_type.value,
            number,
            source_id,
            debit,
            credit,
        )
        return entry

    def record_collection(self, db: Session, payment) -> LedgerTransaction:
        return self._record(
            db,
            LedgerTransactionType.collection_payment,
            source_id=payment.id,
            property_id=payment.property_id,
            debit=payment.total_amount,
            credit=ZERO,
            description=f"Rent collection {payment.payment_number}",
            reference_number=payment.receipt_number,
            meta_data={
                "payment_number": payment.payment_number,
                "tenant_id": _str_or_none(payment.tenant_id),
                "unit_id": _str_or_none(payment.unit_id),
                "month_year": payment.month_year,
                "payment_reference": payment.payment_reference,
            },
        )

    def record_supply(self, db: Session, payment, property_id=None) -> LedgerTransaction:
        return self._record(
            db,
            LedgerTransactionType.supply_payment,
            source_id=payment.id,
            property_id=property_id,
            debit=ZERO,
            credit=payment.net_amount,
            description=f"Owner payout {payment.payment_number}",
            reference_number=payment.bank_transfer_reference or payment.payment_number,
            meta_data={
                "payment_number": payment.payment_number,
                "owner_id": _str_or_none(payment.owner_id),
                "property_contract_id": _str_or_none(payment.property_contract_id),
                "gross_amount": str(payment.gross_amount),
                "commission_amount": str(payment.commission_amount),
                "month_year": payment.month_year,
            },
        )


transaction_recorder = TransactionRecorder()
