from __future__ import annotations

from datetime import date
from typing import Optional


def monthly_accrual(
    *,
    monthly_rate: float,
    max_accrual_limit: float,
    current_total: float,
    year: int,
    join_date: Optional[date] = None,
    prorate_first_year: bool = True,
) -> float:
    """Days to credit for one month.

    In the joining year the rate is scaled by the months left in the year,
    counting the joining month. The result never pushes the total past the
    accrual limit (a limit of 0 means unlimited).
    """
    amount = float(monthly_rate)
    if prorate_first_year and join_date is not None and join_date.year == year:
        amount = amount * (12 - (join_date.month - 1)) / 12

    if max_accrual_limit and current_total + amount > max_accrual_limit:
        amount = max(0.0, max_accrual_limit - current_total)
    return round(amount, 2)


def carryover_amount(available: float, max_carry_over: float) -> float:
    return round(max(0.0, min(float(available), float(max_carry_over))), 2)
