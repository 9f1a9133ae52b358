"""Derived money fields.

``recalculate_*`` run from the model flush hooks, so every write path
recomputes ``total_amount`` and ``net_amount`` from their inputs.
"""

from datetime import date
from decimal import Decimal

from app.services.clock import system_clock
from app.services.common import ZERO, round_money, to_money

HUNDRED = Decimal("100")


class FeeCalculator:
    """Fee and deduction policy for payments.

    The module-level ``fee_calculator`` is the one the mapper events use for
    ``net_amount``; a calculator handed to a payment service only prices
    commissions and late fees.
    """

    def calculate_commission(self, gross_amount, rate) -> Decimal:
        if rate is None:
            return ZERO
        return round_money(to_money(gross_amount) * Decimal(str(rate)) / HUNDRED)

    def calculate_net_amount(
        self,
        gross_amount,
        commission_amount=None,
        maintenance_deduction=None,
        other_deductions=None,
    ) -> Decimal:
        return round_money(
            to_money(gross_amount)
            - to_money(commission_amount)
            - to_money(maintenance_deduction)
            - to_money(other_deductions)
        )

    def calculate_late_fee(self, amount, days_overdue: int, daily_rate) -> Decimal:
        """Percent of ``amount`` per day past the end of the due window."""
        if days_overdue <= 0 or daily_rate is None:
            return ZERO
        return round_money(
            to_money(amount) * Decimal(str(daily_rate)) / HUNDRED * days_overdue
        )


fee_calculator = FeeCalculator()


def month_year(value: date) -> str:
    return value.strftime("%Y-%m")


def recalculate_collection_totals(payment, today: date | None = None) -> None:
    payment.amount = to_money(payment.amount)
    payment.late_fee = to_money(payment.late_fee)
    payment.total_amount = round_money(payment.amount + payment.late_fee)
    if not payment.month_year:
        anchor = payment.due_date_start or today or system_clock.today()
        payment.month_year = month_year(anchor)


def recalculate_supply_totals(payment, today: date | None = None) -> None:
    payment.gross_amount = to_money(payment.gross_amount)
    payment.commission_amount = to_money(payment.commission_amount)
    payment.maintenance_deduction = to_money(payment.maintenance_deduction)
    payment.other_deductions = to_money(payment.other_deductions)
    payment.net_amount = fee_calculator.calculate_net_amount(
        payment.gross_amount,
        payment.commission_amount,
        payment.maintenance_deduction,
        payment.other_deductions,
    )
    if not payment.month_year:
        anchor = payment.due_date or today or system_clock.today()
        payment.month_year = month_year(anchor)
