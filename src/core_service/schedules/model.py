from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import AssignmentStatus, ScheduleStatus, ScheduleType


@dataclass(frozen=True)
class WorkSchedule:
    """Domain entity: a working-time template (hours, shifts, overtime, geofence)."""

    schedule_id: int
    code: str
    name: str
    type: ScheduleType
    status: ScheduleStatus = ScheduleStatus.ACTIVE
    description: Optional[str] = None
    working_days: list = field(default_factory=list)
    regular_hours: dict = field(default_factory=dict)
    shifts: list = field(default_factory=list)
    overtime_policy: dict = field(default_factory=dict)
    flexible_settings: dict = field(default_factory=dict)
    geofencing: dict = field(default_factory=dict)
    applicable_branches: list = field(default_factory=list)
    applicable_divisions: list = field(default_factory=list)
    applicable_positions: list = field(default_factory=list)
    effective_date: Optional[date] = None
    expiry_date: Optional[date] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def find_shift(self, code: Optional[str]) -> Optional[dict]:
        for shift in self.shifts:
            if shift.get("code") == code:
                return shift
        return None


@dataclass(frozen=True)
class EmployeeSchedule:
    """Assignment of a work schedule to an employee for a date range."""

    assignment_id: int
    employee_ref: int
    schedule_id: int
    start_date: date
    end_date: Optional[date] = None
    shift_assignments: list = field(default_factory=list)
    overrides: dict = field(default_factory=dict)
    status: AssignmentStatus = AssignmentStatus.ACTIVE
    notes: Optional[str] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def covers(self, day: date) -> bool:
        return self.start_date <= day and (self.end_date is None or day <= self.end_date)

    def shift_code_for(self, day: date) -> Optional[str]:
        iso = day.isoformat()
        for item in self.shift_assignments:
            if item.get("date") == iso:
                return item.get("shift_code")
        return None
