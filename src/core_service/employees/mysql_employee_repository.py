from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..common.serialization import dumps, loads
from ..core.enums import EmployeeStatus, EmploymentType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import Employee
from .repository import EmployeeRepository

_JSON_FIELDS = (
    "address",
    "emergency_contacts",
    "documents",
    "skills",
    "trainings",
    "evaluations",
    "career_plans",
    "contracts",
    "assignment_history",
    "status_history",
)

_SCALAR_FIELDS = (
    "employee_id",
    "first_name",
    "last_name",
    "full_name",
    "email",
    "phone",
    "gender",
    "birth_date",
    "join_date",
    "user_id",
    "branch_id",
    "division_id",
    "position_id",
    "manager_ref",
    "employment_type",
    "status",
)


def _opt_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


def _to_employee(r: Dict[str, Any]) -> Employee:
    return Employee(
        employee_ref=int(r["employee_ref"]),
        employee_id=r["employee_id"],
        first_name=r["first_name"],
        last_name=r["last_name"],
        full_name=r["full_name"],
        email=r.get("email"),
        phone=r.get("phone"),
        gender=r.get("gender"),
        birth_date=r.get("birth_date"),
        join_date=r.get("join_date"),
        user_id=r.get("user_id"),
        branch_id=_opt_int(r.get("branch_id")),
        division_id=_opt_int(r.get("division_id")),
        position_id=_opt_int(r.get("position_id")),
        manager_ref=_opt_int(r.get("manager_ref")),
        employment_type=EmploymentType(r["employment_type"]),
        status=EmployeeStatus(r["status"]),
        address=loads(r.get("address"), {}),
        emergency_contacts=loads(r.get("emergency_contacts"), []),
        documents=loads(r.get("documents"), []),
        skills=loads(r.get("skills"), []),
        trainings=loads(r.get("trainings"), []),
        evaluations=loads(r.get("evaluations"), []),
        career_plans=loads(r.get("career_plans"), []),
        contracts=loads(r.get("contracts"), []),
        assignment_history=loads(r.get("assignment_history"), []),
        status_history=loads(r.get("status_history"), []),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _values(e: Employee) -> tuple:
    scalars = []
    for name in _SCALAR_FIELDS:
        value = getattr(e, name)
        scalars.append(value.value if hasattr(value, "value") else value)
    return tuple(scalars) + tuple(dumps(getattr(e, name)) for name in _JSON_FIELDS)


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _one(self, column: str, value: Any) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM employees WHERE {column}=%s", (value,))
            r = fetchone(cur)
            return _to_employee(r) if r else None

    def get_by_id(self, employee_ref: int) -> Optional[Employee]:
        return self._one("employee_ref", int(employee_ref))

    def get_by_employee_id(self, employee_id: str) -> Optional[Employee]:
        return self._one("employee_id", employee_id)

    def get_by_user_id(self, user_id: str) -> Optional[Employee]:
        return self._one("user_id", str(user_id))

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
        like = f"%{search}%" if search else None
        where, params = build_where(
            [
                ("branch_id=%s", branch_id),
                ("division_id=%s", division_id),
                ("position_id=%s", position_id),
                ("status=%s", status.value if status else None),
                ("employment_type=%s", employment_type.value if employment_type else None),
                ("(employee_id LIKE %s OR full_name LIKE %s OR email LIKE %s)", (like, like, like) if like else None),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM employees {where} ORDER BY employee_id", tuple(params))
            return [_to_employee(r) for r in fetchall(cur)]

    def create(self, employee: Employee) -> int:
        columns = _SCALAR_FIELDS + _JSON_FIELDS + ("created_by", "updated_by")
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO employees({', '.join(columns)}) VALUES({', '.join(['%s'] * len(columns))})",
                _values(employee) + (employee.created_by, employee.updated_by),
            )
            return int(cur.lastrowid)

    def update(self, employee: Employee) -> bool:
        columns = _SCALAR_FIELDS + _JSON_FIELDS + ("updated_by",)
        assignments = ", ".join(f"{c}=%s" for c in columns)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE employees SET {assignments} WHERE employee_ref=%s",
                _values(employee) + (employee.updated_by, employee.employee_ref),
            )
            return cur.rowcount > 0

    def delete(self, employee_ref: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM employees WHERE employee_ref=%s", (int(employee_ref),))
            return cur.rowcount > 0
