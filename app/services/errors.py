"""Typed failures raised by the payment engine.

Callers receive one of these instead of a generic exception; the HTTP layer
maps them to JSON responses in ``app.errors``.
"""

from __future__ import annotations


class PaymentEngineError(Exception):
    """Base exception for payment engine failures."""

    code = "payment_engine_error"
    retryable = False

    def __init__(self, message: str, **details: object) -> None:
        super().__init__(message)
        self.message = message
        self.details = {key: value for key, value in details.items() if value is not None}


class IllegalTransition(PaymentEngineError):
    """Mutation not allowed in the record's current derived state."""

    code = "illegal_transition"

    def __init__(
        self,
        action: str,
        reason: str,
        record_id: object | None = None,
        status: str | None = None,
    ) -> None:
        super().__init__(
            f"Cannot {action}: {reason}",
            action=action,
            record_id=str(record_id) if record_id is not None else None,
            status=status,
        )
        self.action = action
        self.reason = reason


class InvalidConfiguration(PaymentEngineError):
    """A configuration value is missing, non-numeric or out of range."""

    code = "invalid_configuration"

    def __init__(self, key: str, reason: str, value: object | None = None) -> None:
        super().__init__(
            f"Invalid setting {key}: {reason}",
            key=key,
            value=str(value) if value is not None else None,
        )
        self.key = key


class SequenceConflict(PaymentEngineError):
    """A generated number collided with an existing one. Safe to retry."""

    code = "sequence_conflict"
    retryable = True

    def __init__(self, sequence: str, number: str | None = None, attempts: int | None = None) -> None:
        super().__init__(
            f"Could not allocate a unique {sequence} number",
            sequence=sequence,
            number=number,
            attempts=attempts,
        )
        self.sequence = sequence


class RecordNotFound(PaymentEngineError):
    """Lookup failure reported inside a batch result rather than raised."""

    code = "not_found"

    def __init__(self, model: str, record_id: object) -> None:
        super().__init__(f"{model} not found", record_id=str(record_id))
