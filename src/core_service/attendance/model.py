from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus

ANOMALY_FLAGS = ("is_late", "is_early_departure", "is_outside_geofence", "is_incomplete", "is_overtime")


def empty_anomalies() -> dict:
    return {flag: False for flag in ANOMALY_FLAGS}


@dataclass(frozen=True)
class Attendance:
    """Domain entity: one employee's attendance for one day."""

    attendance_id: int
    employee_ref: int
    date: date
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    check_in: dict = field(default_factory=dict)
    check_out: dict = field(default_factory=dict)
    status: AttendanceStatus = AttendanceStatus.PRESENT
    work_duration_minutes: int = 0
    overtime_minutes: int = 0
    late_minutes: int = 0
    early_departure_minutes: int = 0
    schedule_id: Optional[int] = None
    shift_code: Optional[str] = None
    anomalies: dict = field(default_factory=empty_anomalies)
    correction_request: Optional[dict] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def has_anomaly(self, flag: Optional[str] = None) -> bool:
        if flag:
            return bool(self.anomalies.get(flag))
        return any(self.anomalies.get(f) for f in ANOMALY_FLAGS)


@dataclass(frozen=True)
class WorkWindow:
    """Expected start/end for a working day, resolved from the schedule."""

    start: datetime
    end: datetime
    grace_minutes: int = 0
    schedule_id: Optional[int] = None
    shift_code: Optional[str] = None
    overtime_allowed: bool = True
    overtime_minimum_minutes: int = 0

    @property
    def is_overnight(self) -> bool:
        return self.end.date() > self.start.date()
