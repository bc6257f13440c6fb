from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, Optional, Sequence

from ..common.serialization import dumps, loads
from ..core.enums import HalfDayPortion, LeaveType, RequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone, placeholders
from .model import Leave, LeaveBalance
from .repository import LeaveBalanceRepository, LeaveRepository


def _to_leave(r: Dict[str, Any]) -> Leave:
    return Leave(
        leave_id=int(r["leave_id"]),
        employee_ref=int(r["employee_ref"]),
        type=LeaveType(r["type"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        duration=float(r["duration"]),
        balance_year=int(r["balance_year"]),
        is_half_day=bool(r["is_half_day"]),
        half_day_portion=HalfDayPortion(r["half_day_portion"]) if r.get("half_day_portion") else None,
        reason=r.get("reason"),
        attachments=loads(r.get("attachments"), []),
        status=RequestStatus(r["status"]),
        approval_history=loads(r.get("approval_history"), []),
        cancellation_reason=r.get("cancellation_reason"),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _to_balance(r: Dict[str, Any]) -> LeaveBalance:
    return LeaveBalance(
        balance_id=int(r["balance_id"]),
        employee_ref=int(r["employee_ref"]),
        year=int(r["year"]),
        balances=loads(r.get("balances"), {}),
        accrual_settings=loads(r.get("accrual_settings"), {}),
        accrual_history=loads(r.get("accrual_history"), []),
        adjustments=loads(r.get("adjustments"), []),
        last_accrual_month=r.get("last_accrual_month"),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, leave_id: int) -> Optional[Leave]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM leaves WHERE leave_id=%s", (int(leave_id),))
            r = fetchone(cur)
            return _to_leave(r) if r else None

    def list(
        self,
        *,
        employee_ref: Optional[int] = None,
        status: Optional[RequestStatus] = None,
        type: Optional[LeaveType] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Leave]:
        where, params = build_where(
            [
                ("employee_ref=%s", employee_ref),
                ("status=%s", status.value if status else None),
                ("type=%s", type.value if type else None),
                ("end_date>=%s", start),
                ("start_date<=%s", end),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM leaves {where} ORDER BY start_date DESC, leave_id DESC", tuple(params))
            return [_to_leave(r) for r in fetchall(cur)]

    def find_overlapping(
        self,
        *,
        employee_ref: int,
        start: date,
        end: date,
        statuses: Iterable[RequestStatus],
    ) -> Optional[Leave]:
        values = [s.value for s in statuses]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT * FROM leaves
                WHERE employee_ref=%s AND start_date<=%s AND end_date>=%s
                  AND status IN ({placeholders(values)})
                LIMIT 1
                """,
                (int(employee_ref), end, start, *values),
            )
            r = fetchone(cur)
            return _to_leave(r) if r else None

    def create(self, leave: Leave) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leaves(
                    employee_ref, type, start_date, end_date, duration, balance_year, is_half_day,
                    half_day_portion, reason, attachments, status, approval_history, cancellation_reason,
                    created_by, updated_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    leave.employee_ref,
                    leave.type.value,
                    leave.start_date,
                    leave.end_date,
                    leave.duration,
                    leave.balance_year,
                    int(leave.is_half_day),
                    leave.half_day_portion.value if leave.half_day_portion else None,
                    leave.reason,
                    dumps(leave.attachments),
                    leave.status.value,
                    dumps(leave.approval_history),
                    leave.cancellation_reason,
                    leave.created_by,
                    leave.updated_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, leave: Leave) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leaves
                SET status=%s, approval_history=%s, cancellation_reason=%s, attachments=%s, updated_by=%s
                WHERE leave_id=%s
                """,
                (
                    leave.status.value,
                    dumps(leave.approval_history),
                    leave.cancellation_reason,
                    dumps(leave.attachments),
                    leave.updated_by,
                    leave.leave_id,
                ),
            )
            return cur.rowcount > 0


class MySQLLeaveBalanceRepository(LeaveBalanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, employee_ref: int, year: int) -> Optional[LeaveBalance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT * FROM leave_balances WHERE employee_ref=%s AND year=%s",
                (int(employee_ref), int(year)),
            )
            r = fetchone(cur)
            return _to_balance(r) if r else None

    def list(self, *, year: Optional[int] = None, employee_refs: Optional[Iterable[int]] = None) -> Sequence[LeaveBalance]:
        refs = list(employee_refs) if employee_refs is not None else None
        if refs is not None and not refs:
            return []
        where, params = build_where(
            [
                ("year=%s", year),
                (f"employee_ref IN ({placeholders(refs)})" if refs else "", tuple(refs) if refs else None),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM leave_balances {where} ORDER BY employee_ref, year", tuple(params))
            return [_to_balance(r) for r in fetchall(cur)]

    def create(self, balance: LeaveBalance) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_balances(
                    employee_ref, year, balances, accrual_settings, accrual_history, adjustments,
                    last_accrual_month, created_by, updated_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    balance.employee_ref,
                    balance.year,
                    dumps(balance.balances),
                    dumps(balance.accrual_settings),
                    dumps(balance.accrual_history),
                    dumps(balance.adjustments),
                    balance.last_accrual_month,
                    balance.created_by,
                    balance.updated_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, balance: LeaveBalance) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_balances
                SET balances=%s, accrual_settings=%s, accrual_history=%s, adjustments=%s,
                    last_accrual_month=%s, updated_by=%s
                WHERE balance_id=%s
                """,
                (
                    dumps(balance.balances),
                    dumps(balance.accrual_settings),
                    dumps(balance.accrual_history),
                    dumps(balance.adjustments),
                    balance.last_accrual_month,
                    balance.updated_by,
                    balance.balance_id,
                ),
            )
            return cur.rowcount > 0
