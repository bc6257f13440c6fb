from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..common.serialization import dumps, loads
from ..core.enums import EmployeeAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall
from .model import EmployeeHistory
from .repository import EmployeeHistoryRepository


class MySQLEmployeeHistoryRepository(EmployeeHistoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, entry: EmployeeHistory) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO employee_history(employee_ref, change_type, description, previous_value, new_value, changed_by, timestamp)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(entry.employee_ref),
                    entry.change_type.value,
                    entry.description,
                    dumps(entry.previous_value) if entry.previous_value is not None else None,
                    dumps(entry.new_value) if entry.new_value is not None else None,
                    entry.changed_by,
                    entry.timestamp,
                ),
            )
            return int(cur.lastrowid)

    def list_for_employee(
        self,
        employee_ref: int,
        *,
        change_type: Optional[EmployeeAction] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[EmployeeHistory]:
        where, params = build_where(
            [
                ("employee_ref=%s", int(employee_ref)),
                ("change_type=%s", change_type.value if change_type else None),
                ("timestamp>=%s", start),
                ("timestamp<=%s", end),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM employee_history {where} ORDER BY timestamp DESC, history_id DESC", tuple(params))
            return [
                EmployeeHistory(
                    history_id=int(r["history_id"]),
                    employee_ref=int(r["employee_ref"]),
                    change_type=EmployeeAction(r["change_type"]),
                    description=r["description"],
                    previous_value=loads(r.get("previous_value")),
                    new_value=loads(r.get("new_value")),
                    changed_by=r.get("changed_by"),
                    timestamp=r.get("timestamp"),
                )
                for r in fetchall(cur)
            ]
