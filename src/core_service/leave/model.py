from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import HalfDayPortion, LeaveType, RequestStatus


def available_days(entry: dict) -> float:
    """allocated + additional + carried_over - used - pending"""
    return round(
        float(entry.get("allocated", 0))
        + float(entry.get("additional", 0))
        + float(entry.get("carried_over", 0))
        - float(entry.get("used", 0))
        - float(entry.get("pending", 0)),
        2,
    )


@dataclass(frozen=True)
class Leave:
    leave_id: int
    employee_ref: int
    type: LeaveType
    start_date: date
    end_date: date
    duration: float
    balance_year: int
    is_half_day: bool = False
    half_day_portion: Optional[HalfDayPortion] = None
    reason: Optional[str] = None
    attachments: list = field(default_factory=list)
    status: RequestStatus = RequestStatus.PENDING
    approval_history: list = field(default_factory=list)
    cancellation_reason: Optional[str] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class LeaveBalance:
    """Yearly leave entitlement of one employee.

    ``balances`` maps a leave type value to ``{allocated, additional, carried_over,
    used, pending, carry_over_expiry, max_carry_over}``.
    """

    balance_id: int
    employee_ref: int
    year: int
    balances: dict = field(default_factory=dict)
    accrual_settings: dict = field(default_factory=dict)
    accrual_history: list = field(default_factory=list)
    adjustments: list = field(default_factory=list)
    last_accrual_month: Optional[str] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def entry(self, leave_type: LeaveType) -> Optional[dict]:
        return self.balances.get(leave_type.value)

    def available(self, leave_type: LeaveType) -> float:
        entry = self.entry(leave_type)
        return available_days(entry) if entry else 0.0
