"""Preconditions for payment state changes.

``can_*`` answer the question, ``ensure_*`` raise ``IllegalTransition``.
All checks read only the record in hand, so callers lock the row first and
check before mutating anything.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from app.services.errors import IllegalTransition, PaymentEngineError


@dataclass
class TransitionResult:
    success: bool
    status: enum.Enum | None = None
    payment: object | None = None
    error: PaymentEngineError | None = None

    @classmethod
    def ok(cls, payment, status):
        return cls(success=True, status=status, payment=payment)

    @classmethod
    def failed(cls, error: PaymentEngineError, payment=None, status=None):
        return cls(success=False, status=status, payment=payment, error=error)


class TransitionGuard:
    @staticmethod
    def can_postpone(payment) -> bool:
        return payment.collection_date is None and not payment.delay_duration

    @staticmethod
    def can_collect(payment) -> bool:
        return payment.collection_date is None

    @staticmethod
    def can_confirm_supply(payment) -> bool:
        return payment.paid_date is None

    def ensure_can_postpone(self, payment) -> None:
        if payment.collection_date is not None:
            raise IllegalTransition("postpone", "payment already collected", payment.id, "collected")
        if payment.delay_duration:
            raise IllegalTransition("postpone", "payment already postponed", payment.id, "postponed")

    def ensure_can_collect(self, payment) -> None:
        if not self.can_collect(payment):
            raise IllegalTransition("collect", "payment already collected", payment.id, "collected")

    def ensure_can_confirm_supply(self, payment) -> None:
        if not self.can_confirm_supply(payment):
            raise IllegalTransition("confirm", "payment already supplied", payment.id, "collected")

    def ensure_deletable(self, payment) -> None:
        raise IllegalTransition(
            "delete", "collection payments cannot be deleted", getattr(payment, "id", None)
        )


transition_guard = TransitionGuard()
