from datetime import date

import pytest

from core_service.core.exceptions import ValidationError
from core_service.leave.calculator.accrual import carryover_amount, monthly_accrual
from core_service.leave.calculator.working_days_calculator import WorkingDaysCalculator
from core_service.leave.model import available_days


def test_working_days_skip_weekends_and_holidays():
    calc = WorkingDaysCalculator()
    week = (date(2024, 3, 4), date(2024, 3, 10))

    assert calc.duration(*week, holidays=set()) == 5.0
    assert calc.duration(*week, holidays={date(2024, 3, 6), date(2024, 3, 9)}) == 4.0


def test_half_day_rules():
    calc = WorkingDaysCalculator()

    assert calc.duration(date(2024, 3, 4), date(2024, 3, 4), holidays=set(), is_half_day=True) == 0.5
    assert calc.duration(date(2024, 3, 9), date(2024, 3, 9), holidays=set(), is_half_day=True) == 0.0
    with pytest.raises(ValidationError):
        calc.duration(date(2024, 3, 4), date(2024, 3, 5), holidays=set(), is_half_day=True)


def test_monthly_accrual_prorates_and_caps():
    assert monthly_accrual(monthly_rate=1, max_accrual_limit=24, current_total=0, year=2024, join_date=date(2023, 7, 1)) == 1.0
    assert monthly_accrual(monthly_rate=1, max_accrual_limit=24, current_total=0, year=2024, join_date=date(2024, 7, 15)) == 0.5
    assert (
        monthly_accrual(
            monthly_rate=1, max_accrual_limit=24, current_total=0, year=2024, join_date=date(2024, 7, 15), prorate_first_year=False
        )
        == 1.0
    )
    assert monthly_accrual(monthly_rate=1, max_accrual_limit=24, current_total=23.8, year=2024) == 0.2
    assert monthly_accrual(monthly_rate=1, max_accrual_limit=24, current_total=30, year=2024) == 0.0
    assert monthly_accrual(monthly_rate=2, max_accrual_limit=0, current_total=100, year=2024) == 2.0


def test_carryover_and_available():
    assert carryover_amount(8, 5) == 5
    assert carryover_amount(3.5, 5) == 3.5
    assert carryover_amount(-2, 5) == 0.0
    assert available_days({"allocated": 12, "additional": 1.5, "carried_over": 2, "used": 4, "pending": 0.5}) == 11.0
