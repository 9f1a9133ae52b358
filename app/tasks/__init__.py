from app.tasks.payments import refresh_late_fees

__all__ = ["refresh_late_fees"]
