from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Sequence

from ..common.serialization import dumps, loads
from ..core.enums import AssignmentStatus, ScheduleStatus, ScheduleType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import EmployeeSchedule, WorkSchedule
from .repository import EmployeeScheduleRepository, WorkScheduleRepository

_SCHEDULE_JSON = (
    "working_days",
    "regular_hours",
    "shifts",
    "overtime_policy",
    "flexible_settings",
    "geofencing",
    "applicable_branches",
    "applicable_divisions",
    "applicable_positions",
)


def _to_schedule(r: Dict[str, Any]) -> WorkSchedule:
    return WorkSchedule(
        schedule_id=int(r["schedule_id"]),
        code=r["code"],
        name=r["name"],
        type=ScheduleType(r["type"]),
        status=ScheduleStatus(r["status"]),
        description=r.get("description"),
        working_days=loads(r.get("working_days"), []),
        regular_hours=loads(r.get("regular_hours"), {}),
        shifts=loads(r.get("shifts"), []),
        overtime_policy=loads(r.get("overtime_policy"), {}),
        flexible_settings=loads(r.get("flexible_settings"), {}),
        geofencing=loads(r.get("geofencing"), {}),
        applicable_branches=loads(r.get("applicable_branches"), []),
        applicable_divisions=loads(r.get("applicable_divisions"), []),
        applicable_positions=loads(r.get("applicable_positions"), []),
        effective_date=r.get("effective_date"),
        expiry_date=r.get("expiry_date"),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _schedule_params(s: WorkSchedule) -> tuple:
    return (
        s.code,
        s.name,
        s.type.value,
        s.status.value,
        s.description,
        *(dumps(getattr(s, name)) for name in _SCHEDULE_JSON),
        s.effective_date,
        s.expiry_date,
    )


def _to_assignment(r: Dict[str, Any]) -> EmployeeSchedule:
    return EmployeeSchedule(
        assignment_id=int(r["assignment_id"]),
        employee_ref=int(r["employee_ref"]),
        schedule_id=int(r["schedule_id"]),
        start_date=r["start_date"],
        end_date=r.get("end_date"),
        shift_assignments=loads(r.get("shift_assignments"), []),
        overrides=loads(r.get("overrides"), {}),
        status=AssignmentStatus(r["status"]),
        notes=r.get("notes"),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLWorkScheduleRepository(WorkScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, schedule_id: int) -> Optional[WorkSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM work_schedules WHERE schedule_id=%s", (int(schedule_id),))
            r = fetchone(cur)
            return _to_schedule(r) if r else None

    def get_by_code(self, code: str) -> Optional[WorkSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM work_schedules WHERE code=%s", (code,))
            r = fetchone(cur)
            return _to_schedule(r) if r else None

    def list(
        self,
        *,
        type: Optional[ScheduleType] = None,
        status: Optional[ScheduleStatus] = None,
        branch_id: Optional[int] = None,
        division_id: Optional[int] = None,
    ) -> Sequence[WorkSchedule]:
        where, params = build_where(
            [
                ("type=%s", type.value if type else None),
                ("status=%s", status.value if status else None),
                ("JSON_CONTAINS(applicable_branches, CAST(%s AS JSON))", str(int(branch_id)) if branch_id else None),
                ("JSON_CONTAINS(applicable_divisions, CAST(%s AS JSON))", str(int(division_id)) if division_id else None),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM work_schedules {where} ORDER BY code", tuple(params))
            return [_to_schedule(r) for r in fetchall(cur)]

    def create(self, schedule: WorkSchedule) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO work_schedules(
                    code, name, type, status, description, {', '.join(_SCHEDULE_JSON)},
                    effective_date, expiry_date, created_by, updated_by
                )
                VALUES({', '.join(['%s'] * (len(_SCHEDULE_JSON) + 9))})
                """,
                _schedule_params(schedule) + (schedule.created_by, schedule.updated_by),
            )
            return int(cur.lastrowid)

    def update(self, schedule: WorkSchedule) -> bool:
        json_set = ", ".join(f"{name}=%s" for name in _SCHEDULE_JSON)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE work_schedules
                SET code=%s, name=%s, type=%s, status=%s, description=%s, {json_set},
                    effective_date=%s, expiry_date=%s, updated_by=%s
                WHERE schedule_id=%s
                """,
                _schedule_params(schedule) + (schedule.updated_by, schedule.schedule_id),
            )
            return cur.rowcount > 0


class MySQLEmployeeScheduleRepository(EmployeeScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, assignment_id: int) -> Optional[EmployeeSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM employee_schedules WHERE assignment_id=%s", (int(assignment_id),))
            r = fetchone(cur)
            return _to_assignment(r) if r else None

    def list(
        self,
        *,
        employee_ref: Optional[int] = None,
        schedule_id: Optional[int] = None,
        status: Optional[AssignmentStatus] = None,
        effective_on: Optional[date] = None,
    ) -> Sequence[EmployeeSchedule]:
        where, params = build_where(
            [
                ("employee_ref=%s", employee_ref),
                ("schedule_id=%s", schedule_id),
                ("status=%s", status.value if status else None),
                ("start_date<=%s", effective_on),
                ("(end_date IS NULL OR end_date>=%s)", effective_on),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT * FROM employee_schedules {where} ORDER BY employee_ref, start_date DESC",
                tuple(params),
            )
            return [_to_assignment(r) for r in fetchall(cur)]

    def find_overlapping(
        self,
        *,
        employee_ref: int,
        start_date: date,
        end_date: Optional[date],
        exclude_id: Optional[int] = None,
    ) -> Optional[EmployeeSchedule]:
        where, params = build_where(
            [
                ("employee_ref=%s", int(employee_ref)),
                ("status=%s", AssignmentStatus.ACTIVE.value),
                ("start_date<=%s", end_date or date.max),
                ("(end_date IS NULL OR end_date>=%s)", start_date),
                ("assignment_id<>%s", exclude_id),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM employee_schedules {where} LIMIT 1", tuple(params))
            r = fetchone(cur)
            return _to_assignment(r) if r else None

    def create(self, assignment: EmployeeSchedule) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO employee_schedules(
                    employee_ref, schedule_id, start_date, end_date, shift_assignments, overrides,
                    status, notes, created_by, updated_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    assignment.employee_ref,
                    assignment.schedule_id,
                    assignment.start_date,
                    assignment.end_date,
                    dumps(assignment.shift_assignments),
                    dumps(assignment.overrides),
                    assignment.status.value,
                    assignment.notes,
                    assignment.created_by,
                    assignment.updated_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, assignment: EmployeeSchedule) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employee_schedules
                SET schedule_id=%s, start_date=%s, end_date=%s, shift_assignments=%s, overrides=%s,
                    status=%s, notes=%s, updated_by=%s
                WHERE assignment_id=%s
                """,
                (
                    assignment.schedule_id,
                    assignment.start_date,
                    assignment.end_date,
                    dumps(assignment.shift_assignments),
                    dumps(assignment.overrides),
                    assignment.status.value,
                    assignment.notes,
                    assignment.updated_by,
                    assignment.assignment_id,
                ),
            )
            return cur.rowcount > 0
