from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import HalfDayPortion, HolidayType, RecordStatus


@dataclass(frozen=True)
class Holiday:
    holiday_id: int
    name: str
    date: date
    month: int = 0
    day: int = 0
    year: int = 0
    type: HolidayType = HolidayType.NATIONAL
    is_recurring: bool = True
    is_half_day: bool = False
    half_day_portion: HalfDayPortion = HalfDayPortion.AFTERNOON
    description: Optional[str] = None
    applicable_branches: list = field(default_factory=list)
    applicable_divisions: list = field(default_factory=list)
    status: RecordStatus = RecordStatus.ACTIVE
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def applies_to(self, branch_id: Optional[int] = None, division_id: Optional[int] = None) -> bool:
        """Empty applicability lists mean the holiday applies everywhere."""
        if branch_id is not None and self.applicable_branches and branch_id not in self.applicable_branches:
            return False
        if division_id is not None and self.applicable_divisions and division_id not in self.applicable_divisions:
            return False
        return True
