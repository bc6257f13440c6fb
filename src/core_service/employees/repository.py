from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import EmployeeAction, EmployeeStatus, EmploymentType
from .model import Employee, EmployeeHistory


class EmployeeRepository(Protocol):
    def get_by_id(self, employee_ref: int) -> Optional[Employee]:
        raise NotImplementedError

    def get_by_employee_id(self, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def get_by_user_id(self, user_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def list(
        self,
        *,
        branch_id: Optional[int] = None,
        division_id: Optional[int] = None,
        position_id: Optional[int] = None,
        status: Optional[EmployeeStatus] = None,
        employment_type: Optional[EmploymentType] = None,
        search: Optional[str] = None,
    ) -> Sequence[Employee]:
        raise NotImplementedError

    def create(self, employee: Employee) -> int:
        raise NotImplementedError

    def update(self, employee: Employee) -> bool:
        raise NotImplementedError

    def delete(self, employee_ref: int) -> bool:
        raise NotImplementedError


class EmployeeHistoryRepository(Protocol):
    def create(self, entry: EmployeeHistory) -> int:
        raise NotImplementedError

    def list_for_employee(
        self,
        employee_ref: int,
        *,
        change_type: Optional[EmployeeAction] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[EmployeeHistory]:
        """Newest first."""

        raise NotImplementedError
