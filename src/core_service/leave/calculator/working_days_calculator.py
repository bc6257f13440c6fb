from __future__ import annotations

from datetime import date
from typing import Collection

from ...common.datetime_utils import iter_days
from ...core.exceptions import ValidationError
from .base import LeaveDurationCalculator


class WorkingDaysCalculator(LeaveDurationCalculator):
    """Standard rule: Monday to Friday, minus holidays. A half day counts 0.5."""

    def duration(self, start: date, end: date, *, holidays: Collection[date], is_half_day: bool = False) -> float:
        days = sum(1 for d in iter_days(start, end) if d.weekday() < 5 and d not in holidays)
        if is_half_day:
            if start != end:
                raise ValidationError("Half day leave must start and end on the same day")
            return 0.5 if days else 0.0
        return float(days)
