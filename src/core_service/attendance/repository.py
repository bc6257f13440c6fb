from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import Attendance


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[Attendance]:
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_ref: int, day: date) -> Optional[Attendance]:
        raise NotImplementedError

    def list(
        self,
        *,
        employee_ref: Optional[int] = None,
        employee_refs: Optional[Iterable[int]] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> Sequence[Attendance]:
        """Records ordered by date, newest first."""

        raise NotImplementedError

    def create(self, attendance: Attendance) -> int:
        raise NotImplementedError

    def update(self, attendance: Attendance) -> bool:
        raise NotImplementedError
