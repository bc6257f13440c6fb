from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import LeaveType, RequestStatus
from .model import Leave, LeaveBalance


class LeaveRepository(Protocol):
    def get_by_id(self, leave_id: int) -> Optional[Leave]:
        raise NotImplementedError

    def list(
        self,
        *,
        employee_ref: Optional[int] = None,
        status: Optional[RequestStatus] = None,
        type: Optional[LeaveType] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Leave]:
        """Leaves intersecting [start, end], newest start first."""

        raise NotImplementedError

    def find_overlapping(
        self,
        *,
        employee_ref: int,
        start: date,
        end: date,
        statuses: Iterable[RequestStatus],
    ) -> Optional[Leave]:
        raise NotImplementedError

    def create(self, leave: Leave) -> int:
        raise NotImplementedError

    def update(self, leave: Leave) -> bool:
        raise NotImplementedError


class LeaveBalanceRepository(Protocol):
    def get(self, employee_ref: int, year: int) -> Optional[LeaveBalance]:
        raise NotImplementedError

    def list(self, *, year: Optional[int] = None, employee_refs: Optional[Iterable[int]] = None) -> Sequence[LeaveBalance]:
        raise NotImplementedError

    def create(self, balance: LeaveBalance) -> int:
        raise NotImplementedError

    def update(self, balance: LeaveBalance) -> bool:
        raise NotImplementedError
