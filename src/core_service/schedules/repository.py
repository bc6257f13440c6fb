from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import AssignmentStatus, ScheduleStatus, ScheduleType
from .model import EmployeeSchedule, WorkSchedule


class WorkScheduleRepository(Protocol):
    def get_by_id(self, schedule_id: int) -> Optional[WorkSchedule]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[WorkSchedule]:
        raise NotImplementedError

    def list(
        self,
        *,
        type: Optional[ScheduleType] = None,
        status: Optional[ScheduleStatus] = None,
        branch_id: Optional[int] = None,
        division_id: Optional[int] = None,
    ) -> Sequence[WorkSchedule]:
        raise NotImplementedError

    def create(self, schedule: WorkSchedule) -> int:
        raise NotImplementedError

    def update(self, schedule: WorkSchedule) -> bool:
        raise NotImplementedError


class EmployeeScheduleRepository(Protocol):
    def get_by_id(self, assignment_id: int) -> Optional[EmployeeSchedule]:
        raise NotImplementedError

    def list(
        self,
        *,
        employee_ref: Optional[int] = None,
        schedule_id: Optional[int] = None,
        status: Optional[AssignmentStatus] = None,
        effective_on: Optional[date] = None,
    ) -> Sequence[EmployeeSchedule]:
        raise NotImplementedError

    def find_overlapping(
        self,
        *,
        employee_ref: int,
        start_date: date,
        end_date: Optional[date],
        exclude_id: Optional[int] = None,
    ) -> Optional[EmployeeSchedule]:
        """First ACTIVE assignment of the employee intersecting the range."""

        raise NotImplementedError

    def create(self, assignment: EmployeeSchedule) -> int:
        raise NotImplementedError

    def update(self, assignment: EmployeeSchedule) -> bool:
        raise NotImplementedError
