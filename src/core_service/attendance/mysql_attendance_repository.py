from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, Optional, Sequence

from ..common.serialization import dumps, loads
from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone, placeholders
from .model import Attendance, empty_anomalies
from .repository import AttendanceRepository


def _to_attendance(r: Dict[str, Any]) -> Attendance:
    return Attendance(
        attendance_id=int(r["attendance_id"]),
        employee_ref=int(r["employee_ref"]),
        date=r["date"],
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        check_in=loads(r.get("check_in"), {}),
        check_out=loads(r.get("check_out"), {}),
        status=AttendanceStatus(r["status"]),
        work_duration_minutes=int(r.get("work_duration_minutes") or 0),
        overtime_minutes=int(r.get("overtime_minutes") or 0),
        late_minutes=int(r.get("late_minutes") or 0),
        early_departure_minutes=int(r.get("early_departure_minutes") or 0),
        schedule_id=r.get("schedule_id"),
        shift_code=r.get("shift_code"),
        anomalies={**empty_anomalies(), **loads(r.get("anomalies"), {})},
        correction_request=loads(r.get("correction_request")),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _params(a: Attendance) -> tuple:
    return (
        a.check_in_time,
        a.check_out_time,
        dumps(a.check_in),
        dumps(a.check_out),
        a.status.value,
        a.work_duration_minutes,
        a.overtime_minutes,
        a.late_minutes,
        a.early_departure_minutes,
        a.schedule_id,
        a.shift_code,
        dumps(a.anomalies),
        dumps(a.correction_request) if a.correction_request is not None else None,
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM attendance WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_attendance(r) if r else None

    def get_for_employee_and_date(self, employee_ref: int, day: date) -> Optional[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT * FROM attendance WHERE employee_ref=%s AND date=%s",
                (int(employee_ref), day),
            )
            r = fetchone(cur)
            return _to_attendance(r) if r else None

    def list(
        self,
        *,
        employee_ref: Optional[int] = None,
        employee_refs: Optional[Iterable[int]] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> Sequence[Attendance]:
        refs = list(employee_refs) if employee_refs is not None else None
        if refs is not None and not refs:
            return []
        where, params = build_where(
            [
                ("employee_ref=%s", employee_ref),
                (f"employee_ref IN ({placeholders(refs)})" if refs else "", tuple(refs) if refs else None),
                ("date>=%s", start),
                ("date<=%s", end),
                ("status=%s", status.value if status else None),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM attendance {where} ORDER BY date DESC, employee_ref", tuple(params))
            return [_to_attendance(r) for r in fetchall(cur)]

    def create(self, attendance: Attendance) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance(
                    employee_ref, date, check_in_time, check_out_time, check_in, check_out, status,
                    work_duration_minutes, overtime_minutes, late_minutes, early_departure_minutes,
                    schedule_id, shift_code, anomalies, correction_request, created_by, updated_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (attendance.employee_ref, attendance.date)
                + _params(attendance)
                + (attendance.created_by, attendance.updated_by),
            )
            return int(cur.lastrowid)

    def update(self, attendance: Attendance) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET check_in_time=%s, check_out_time=%s, check_in=%s, check_out=%s, status=%s,
                    work_duration_minutes=%s, overtime_minutes=%s, late_minutes=%s, early_departure_minutes=%s,
                    schedule_id=%s, shift_code=%s, anomalies=%s, correction_request=%s, updated_by=%s
                WHERE attendance_id=%s
                """,
                _params(attendance) + (attendance.updated_by, attendance.attendance_id),
            )
            return cur.rowcount > 0
