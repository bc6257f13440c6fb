from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import replace
from datetime import date
from typing import Any, Callable, ContextManager, Iterable, List, Optional, Tuple

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.pagination import Page, paginate
from ..common.validators import optional_int, require_dict, require_enum, require_fields, require_non_empty, require_number
from ..core.constants import (
    CARRYOVER_EXPIRY_DAY,
    CARRYOVER_EXPIRY_MONTH,
    DEFAULT_ANNUAL_ALLOCATION,
    DEFAULT_MAX_ACCRUAL,
    DEFAULT_MAX_CARRY_OVER,
    DEFAULT_MONTHLY_ACCRUAL,
    DEFAULT_SICK_ALLOCATION,
)
from ..core.enums import BalanceAction, HalfDayPortion, LeaveType, RequestStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from ..holidays.service import HolidayService
from .calculator.accrual import carryover_amount, monthly_accrual
from .calculator.base import LeaveDurationCalculator
from .calculator.working_days_calculator import WorkingDaysCalculator
from .model import Leave, LeaveBalance, available_days
from .repository import LeaveBalanceRepository, LeaveRepository

logger = logging.getLogger(__name__)

_BLOCKING = (RequestStatus.PENDING, RequestStatus.APPROVED)

DEFAULT_ACCRUAL_SETTINGS = {
    "is_monthly_accrual": True,
    "monthly_rate": DEFAULT_MONTHLY_ACCRUAL,
    "max_accrual_limit": DEFAULT_MAX_ACCRUAL,
    "is_prorated_first_year": True,
}


def default_allocations() -> dict:
    return {
        LeaveType.ANNUAL.value: DEFAULT_ANNUAL_ALLOCATION,
        LeaveType.SICK.value: DEFAULT_SICK_ALLOCATION,
    }


def _new_entry(allocated: float = 0, *, max_carry_over: float = 0) -> dict:
    return {
        "allocated": float(allocated),
        "additional": 0.0,
        "carried_over": 0.0,
        "used": 0.0,
        "pending": 0.0,
        "carry_over_expiry": None,
        "max_carry_over": float(max_carry_over),
    }


def with_available(balance: LeaveBalance) -> dict:
    """Balance as a dict with ``available`` computed per leave type."""
    return {
        "balance_id": balance.balance_id,
        "employee_id": balance.employee_ref,
        "year": balance.year,
        "balances": {t: {**entry, "available": available_days(entry)} for t, entry in balance.balances.items()},
        "accrual_settings": balance.accrual_settings,
        "accrual_history": balance.accrual_history,
        "adjustments": balance.adjustments,
        "last_accrual_month": balance.last_accrual_month,
    }


class LeaveService:
    def __init__(
        self,
        leaves: LeaveRepository,
        balances: LeaveBalanceRepository,
        employees: EmployeeRepository,
        holidays: HolidayService,
        *,
        calculator: LeaveDurationCalculator | None = None,
        carryover_expiry: Tuple[int, int] = (CARRYOVER_EXPIRY_MONTH, CARRYOVER_EXPIRY_DAY),
        transaction: Callable[[], ContextManager] = nullcontext,
    ):
        self._leaves = leaves
        self._balances = balances
        self._employees = employees
        self._holidays = holidays
        self._calculator = calculator or WorkingDaysCalculator()
        self._transaction = transaction
        self._carryover_expiry = tuple(carryover_expiry)

    def _require_employee(self, employee_ref: Any):
        ref = optional_int(employee_ref, "employee_id")
        employee = self._employees.get_by_id(ref) if ref is not None else None
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    def _require(self, leave_id: int) -> Leave:
        leave = self._leaves.get_by_id(int(leave_id))
        if not leave:
            raise NotFoundError("Leave request not found")
        return leave

    def _require_balance(self, employee_ref: int, year: int) -> LeaveBalance:
        balance = self._balances.get(employee_ref, year)
        if not balance:
            raise NotFoundError(f"Leave balance not found for year {year}")
        return balance

    @staticmethod
    def _history(action: BalanceAction, leave_type: LeaveType, amount: float, notes: str) -> dict:
        return {
            "date": now_local().isoformat(),
            "leave_type": leave_type.value,
            "amount": round(float(amount), 2),
            "action": action.value,
            "notes": notes,
        }

    @staticmethod
    def _shift(balance: LeaveBalance, leave_type: LeaveType, **deltas: float) -> dict:
        """Copy of ``balance.balances`` with the given fields of one type moved by deltas."""
        balances = {t: dict(e) for t, e in balance.balances.items()}
        entry = balances.setdefault(leave_type.value, _new_entry())
        for key, delta in deltas.items():
            entry[key] = round(float(entry.get(key, 0)) + delta, 2)
        return balances

    def calculate_duration(
        self,
        employee,
        start: date,
        end: date,
        *,
        is_half_day: bool = False,
    ) -> float:
        holidays = self._holidays.holiday_dates(
            start, end, branch_id=employee.branch_id, division_id=employee.division_id
        )
        return self._calculator.duration(start, end, holidays=holidays, is_half_day=is_half_day)

    # ---- requests ----
    def request_leave(self, data: dict, *, user_id: str, today: date | None = None) -> Leave:
        require_fields(data, ("employee_id", "type", "start_date", "end_date"))
        employee = self._require_employee(data["employee_id"])
        leave_type = require_enum(data["type"], LeaveType, "leave type")
        start = parse_iso_date(data["start_date"], "start_date")
        end = parse_iso_date(data["end_date"], "end_date")
        if end < start:
            raise ValidationError("End date cannot be before start date")

        is_half_day = bool(data.get("is_half_day", False))
        duration = self.calculate_duration(employee, start, end, is_half_day=is_half_day)
        if duration <= 0:
            raise ValidationError("Leave duration must be greater than zero working days")

        year = (today or now_local().date()).year
        balance = self._balances.get(employee.employee_ref, year)
        if not balance:
            raise ValidationError("Leave balance not found for the current year")
        if leave_type != LeaveType.UNPAID:
            if balance.entry(leave_type) is None:
                raise ValidationError(f"No balance found for leave type: {leave_type.value}")
            available = balance.available(leave_type)
            if available < duration:
                raise ValidationError(
                    f"Insufficient leave balance. Available: {available:g} days, Requested: {duration:g} days"
                )

        if self._leaves.find_overlapping(employee_ref=employee.employee_ref, start=start, end=end, statuses=_BLOCKING):
            raise ValidationError("Overlapping leave request found for the selected date range")

        attachments = data.get("attachments") or []
        if not isinstance(attachments, list):
            raise ValidationError("Attachments must be a list")

        leave = Leave(
            leave_id=0,
            employee_ref=employee.employee_ref,
            type=leave_type,
            start_date=start,
            end_date=end,
            duration=duration,
            balance_year=year,
            is_half_day=is_half_day,
            half_day_portion=(
                require_enum(data.get("half_day_portion") or HalfDayPortion.MORNING, HalfDayPortion, "half day portion")
                if is_half_day
                else None
            ),
            reason=data.get("reason"),
            attachments=attachments,
            status=RequestStatus.PENDING,
            approval_history=[
                {
                    "status": RequestStatus.PENDING.value,
                    "approver_id": user_id,
                    "approver_role": "EMPLOYEE",
                    "notes": "Leave request submitted",
                    "timestamp": now_local().isoformat(),
                }
            ],
            created_by=user_id,
            updated_by=user_id,
            created_at=now_local(),
            updated_at=now_local(),
        )
        with self._transaction():
            leave = replace(leave, leave_id=self._leaves.create(leave))
            self._balances.update(
                replace(
                    balance,
                    balances=self._shift(balance, leave_type, pending=duration),
                    updated_by=user_id,
                    updated_at=now_local(),
                )
            )
        logger.info("Leave request %s created for employee %s (%s days)", leave.leave_id, employee.employee_id, duration)
        return leave

    def approve_or_reject(
        self,
        leave_id: int,
        *,
        status: Any,
        notes: Optional[str] = None,
        approver_role: Optional[str] = None,
        user_id: str,
    ) -> Leave:
        decision = require_enum(status, RequestStatus, "status")
        if decision not in (RequestStatus.APPROVED, RequestStatus.REJECTED):
            raise ValidationError("Invalid status. Must be APPROVED or REJECTED")

        leave = self._require(leave_id)
        if leave.status != RequestStatus.PENDING:
            raise ValidationError(f"Leave request already {leave.status.value.lower()}")

        balance = self._require_balance(leave.employee_ref, leave.balance_year)
        deltas = {"pending": -leave.duration}
        history = list(balance.accrual_history)
        if decision == RequestStatus.APPROVED:
            deltas["used"] = leave.duration
            history.append(
                self._history(BalanceAction.LEAVE_TAKEN, leave.type, -leave.duration, f"Leave request {leave.leave_id}")
            )
        new_balance = replace(
            balance,
            balances=self._shift(balance, leave.type, **deltas),
            accrual_history=history,
            updated_by=user_id,
            updated_at=now_local(),
        )

        updated = replace(
            leave,
            status=decision,
            approval_history=[
                *leave.approval_history,
                {
                    "status": decision.value,
                    "approver_id": user_id,
                    "approver_role": approver_role,
                    "notes": notes,
                    "timestamp": now_local().isoformat(),
                },
            ],
            updated_by=user_id,
            updated_at=now_local(),
        )
        with self._transaction():
            self._balances.update(new_balance)
            self._leaves.update(updated)
        logger.info("Leave request %s %s by %s", leave.leave_id, decision.value.lower(), user_id)
        return updated

    def cancel_leave(self, leave_id: int, *, reason: Optional[str] = None, user_id: str, today: date | None = None) -> Leave:
        leave = self._require(leave_id)
        if leave.status == RequestStatus.CANCELLED:
            raise ValidationError("Leave request already cancelled")
        if leave.status == RequestStatus.REJECTED:
            raise ValidationError("Cannot cancel rejected leave request")
        today = today or now_local().date()
        if leave.status == RequestStatus.APPROVED and leave.start_date <= today:
            raise ValidationError("Cannot cancel leave that has already started")

        balance = self._require_balance(leave.employee_ref, leave.balance_year)
        history = list(balance.accrual_history)
        if leave.status == RequestStatus.APPROVED:
            deltas = {"used": -leave.duration}
            history.append(
                self._history(BalanceAction.LEAVE_CANCELLED, leave.type, leave.duration, f"Leave request {leave.leave_id}")
            )
        else:
            deltas = {"pending": -leave.duration}
        new_balance = replace(
            balance,
            balances=self._shift(balance, leave.type, **deltas),
            accrual_history=history,
            updated_by=user_id,
            updated_at=now_local(),
        )

        updated = replace(
            leave,
            status=RequestStatus.CANCELLED,
            cancellation_reason=(reason or "").strip() or None,
            approval_history=[
                *leave.approval_history,
                {
                    "status": RequestStatus.CANCELLED.value,
                    "approver_id": user_id,
                    "approver_role": None,
                    "notes": reason,
                    "timestamp": now_local().isoformat(),
                },
            ],
            updated_by=user_id,
            updated_at=now_local(),
        )
        with self._transaction():
            self._balances.update(new_balance)
            self._leaves.update(updated)
        logger.info("Leave request %s cancelled by %s", leave.leave_id, user_id)
        return updated

    def get_leave(self, leave_id: int) -> Leave:
        return self._require(leave_id)

    def list_employee_leaves(
        self,
        employee_ref: Any,
        *,
        status: Optional[str] = None,
        type: Optional[str] = None,
        year: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[Leave]:
        employee = self._require_employee(employee_ref)
        rows = self._leaves.list(
            employee_ref=employee.employee_ref,
            status=require_enum(status, RequestStatus, "status") if status else None,
            type=require_enum(type, LeaveType, "leave type") if type else None,
            start=date(int(year), 1, 1) if year else None,
            end=date(int(year), 12, 31) if year else None,
        )
        return paginate(list(rows), page, limit)

    def list_leaves(
        self,
        *,
        status: Optional[str] = None,
        type: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[Leave]:
        rows = self._leaves.list(
            status=require_enum(status, RequestStatus, "status") if status else None,
            type=require_enum(type, LeaveType, "leave type") if type else None,
        )
        return paginate(list(rows), page, limit)

    # ---- balances ----
    def get_balance(self, employee_ref: Any, year: Optional[int] = None) -> dict:
        employee = self._require_employee(employee_ref)
        year = int(year) if year else now_local().year
        return with_available(self._require_balance(employee.employee_ref, year))

    def initialize_balance(self, data: dict, *, user_id: str) -> LeaveBalance:
        require_fields(data, ("employee_id", "year"))
        employee = self._require_employee(data["employee_id"])
        year = optional_int(data["year"], "year")
        if self._balances.get(employee.employee_ref, year):
            raise ConflictError(f"Leave balance already exists for employee {employee.employee_id} for year {year}")

        allocations = {**default_allocations()}
        for key, value in require_dict(data.get("allocations") or {}, "Allocations").items():
            leave_type = require_enum(key, LeaveType, "leave type")
            allocations[leave_type.value] = require_number(value, f"{leave_type.value} allocation")
            if allocations[leave_type.value] < 0:
                raise ValidationError("Allocations cannot be negative")

        balances = {
            t.value: _new_entry(
                allocations.get(t.value, 0),
                max_carry_over=DEFAULT_MAX_CARRY_OVER if t == LeaveType.ANNUAL else 0,
            )
            for t in LeaveType
        }
        settings = {**DEFAULT_ACCRUAL_SETTINGS, **require_dict(data.get("accrual_settings") or {}, "Accrual settings")}
        balance = LeaveBalance(
            balance_id=0,
            employee_ref=employee.employee_ref,
            year=year,
            balances=balances,
            accrual_settings=settings,
            accrual_history=[
                self._history(
                    BalanceAction.ANNUAL_ALLOCATION,
                    LeaveType.ANNUAL,
                    balances[LeaveType.ANNUAL.value]["allocated"],
                    f"Annual allocation for year {year}",
                )
            ],
            created_by=user_id,
            updated_by=user_id,
            created_at=now_local(),
            updated_at=now_local(),
        )
        balance = replace(balance, balance_id=self._balances.create(balance))
        logger.info("Leave balance initialized for employee %s for year %s", employee.employee_id, year)
        return balance

    def adjust_balance(self, data: dict, *, user_id: str) -> LeaveBalance:
        require_fields(data, ("employee_id", "year", "type", "amount"))
        employee = self._require_employee(data["employee_id"])
        year = optional_int(data["year"], "year")
        leave_type = require_enum(data["type"], LeaveType, "leave type")
        amount = require_number(data["amount"], "Amount")
        if amount == 0:
            raise ValidationError("Adjustment amount cannot be zero")
        reason = require_non_empty(data.get("reason"), "Reason")

        balance = self._require_balance(employee.employee_ref, year)
        balances = self._shift(balance, leave_type, additional=amount)
        if available_days(balances[leave_type.value]) < 0:
            raise ValidationError("Adjustment would make the available balance negative")

        updated = replace(
            balance,
            balances=balances,
            adjustments=[
                *balance.adjustments,
                {
                    "leave_type": leave_type.value,
                    "amount": amount,
                    "reason": reason,
                    "date": now_local().isoformat(),
                    "approved_by": user_id,
                },
            ],
            accrual_history=[*balance.accrual_history, self._history(BalanceAction.ADJUSTMENT, leave_type, amount, reason)],
            updated_by=user_id,
            updated_at=now_local(),
        )
        self._balances.update(updated)
        logger.info("Leave balance adjusted for employee %s (%s %+g)", employee.employee_id, leave_type.value, amount)
        return updated

    def calculate_accruals(
        self,
        year: Any,
        month: Any,
        *,
        employee_refs: Optional[Iterable[int]] = None,
        user_id: str,
    ) -> dict:
        """Credit one month of ANNUAL accrual to every balance of `year`."""
        year_n = optional_int(year, "year")
        month_n = optional_int(month, "month")
        if year_n is None or month_n is None or not 1 <= month_n <= 12:
            raise ValidationError("A valid year and month (1-12) are required")
        period = f"{year_n}-{month_n:02d}"

        processed = skipped = 0
        for balance in self._balances.list(year=year_n, employee_refs=employee_refs):
            settings = {**DEFAULT_ACCRUAL_SETTINGS, **balance.accrual_settings}
            if not settings.get("is_monthly_accrual") or balance.last_accrual_month == period:
                skipped += 1
                continue

            employee = self._employees.get_by_id(balance.employee_ref)
            if not employee:
                logger.warning("Employee %s not found for leave balance %s", balance.employee_ref, balance.balance_id)
                skipped += 1
                continue

            entry = balance.entry(LeaveType.ANNUAL) or _new_entry()
            amount = monthly_accrual(
                monthly_rate=float(settings["monthly_rate"]),
                max_accrual_limit=float(settings.get("max_accrual_limit") or 0),
                current_total=float(entry["allocated"]) + float(entry["additional"]) + float(entry["carried_over"]),
                year=year_n,
                join_date=employee.join_date,
                prorate_first_year=bool(settings.get("is_prorated_first_year", True)),
            )

            changes: dict[str, Any] = {"last_accrual_month": period}
            if amount > 0:
                changes["balances"] = self._shift(balance, LeaveType.ANNUAL, additional=amount)
                changes["accrual_history"] = [
                    *balance.accrual_history,
                    self._history(BalanceAction.MONTHLY_ACCRUAL, LeaveType.ANNUAL, amount, f"Monthly accrual for {period}"),
                ]
                processed += 1
            else:
                skipped += 1
            self._balances.update(replace(balance, **changes, updated_by=user_id, updated_at=now_local()))

        logger.info("Leave accruals for %s: %s processed, %s skipped", period, processed, skipped)
        return {"period": period, "processed": processed, "skipped": skipped}

    def process_carryover(
        self,
        from_year: Any,
        to_year: Any,
        *,
        max_carry_over: float = DEFAULT_MAX_CARRY_OVER,
        employee_refs: Optional[Iterable[int]] = None,
        user_id: str,
    ) -> List[LeaveBalance]:
        from_n = optional_int(from_year, "from_year")
        to_n = optional_int(to_year, "to_year")
        if from_n is None or to_n is None:
            raise ValidationError("From year and to year are required")
        if to_n <= from_n:
            raise ValidationError("To year must be greater than from year")
        limit = float(max_carry_over)
        if limit < 0:
            raise ValidationError("Maximum carry over cannot be negative")

        expiry = date(to_n, *self._carryover_expiry).isoformat()
        created: List[LeaveBalance] = []
        for previous in self._balances.list(year=from_n, employee_refs=employee_refs):
            if self._balances.get(previous.employee_ref, to_n):
                logger.info("Leave balance already exists for employee %s for year %s", previous.employee_ref, to_n)
                continue

            # only ANNUAL is re-allocated; other types start the new year empty
            allocations = {LeaveType.ANNUAL.value: DEFAULT_ANNUAL_ALLOCATION}
            history = [
                self._history(
                    BalanceAction.ANNUAL_ALLOCATION,
                    LeaveType.ANNUAL,
                    DEFAULT_ANNUAL_ALLOCATION,
                    f"Annual allocation for year {to_n}",
                )
            ]
            balances = {}
            for t in LeaveType:
                old = previous.balances.get(t.value) or _new_entry()
                type_limit = min(limit, float(old.get("max_carry_over", 0)))
                entry = _new_entry(allocations.get(t.value, 0), max_carry_over=float(old.get("max_carry_over", 0)))
                carried = carryover_amount(available_days(old), type_limit)
                if carried > 0:
                    entry["carried_over"] = carried
                    entry["carry_over_expiry"] = expiry
                    history.append(self._history(BalanceAction.CARRYOVER, t, carried, f"Carried over from year {from_n}"))
                balances[t.value] = entry

            balance = LeaveBalance(
                balance_id=0,
                employee_ref=previous.employee_ref,
                year=to_n,
                balances=balances,
                accrual_settings=dict(previous.accrual_settings),
                accrual_history=history,
                created_by=user_id,
                updated_by=user_id,
                created_at=now_local(),
                updated_at=now_local(),
            )
            created.append(replace(balance, balance_id=self._balances.create(balance)))

        logger.info("Leave carryover processed for %s employees from %s to %s", len(created), from_n, to_n)
        return created
