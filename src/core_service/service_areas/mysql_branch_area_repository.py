from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..core.enums import RecordStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import BranchServiceArea
from .repository import BranchServiceAreaRepository


def _to_assignment(r: Dict[str, Any]) -> BranchServiceArea:
    return BranchServiceArea(
        assignment_id=int(r["assignment_id"]),
        branch_id=int(r["branch_id"]),
        area_id=int(r["area_id"]),
        priority=int(r["priority"]),
        is_primary=bool(r["is_primary"]),
        status=RecordStatus(r["status"]),
        notes=r.get("notes"),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLBranchServiceAreaRepository(BranchServiceAreaRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, assignment_id: int) -> Optional[BranchServiceArea]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM branch_service_areas WHERE assignment_id=%s", (int(assignment_id),))
            r = fetchone(cur)
            return _to_assignment(r) if r else None

    def get_for(self, branch_id: int, area_id: int) -> Optional[BranchServiceArea]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT * FROM branch_service_areas WHERE branch_id=%s AND area_id=%s",
                (int(branch_id), int(area_id)),
            )
            r = fetchone(cur)
            return _to_assignment(r) if r else None

    def list(
        self,
        *,
        branch_id: Optional[int] = None,
        area_id: Optional[int] = None,
        status: Optional[RecordStatus] = None,
    ) -> Sequence[BranchServiceArea]:
        where, params = build_where(
            [
                ("branch_id=%s", branch_id),
                ("area_id=%s", area_id),
                ("status=%s", status.value if status else None),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT * FROM branch_service_areas {where} ORDER BY priority, is_primary DESC, assignment_id",
                tuple(params),
            )
            return [_to_assignment(r) for r in fetchall(cur)]

    def create(self, assignment: BranchServiceArea) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO branch_service_areas(branch_id, area_id, priority, is_primary, status, notes, created_by, updated_by)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    assignment.branch_id,
                    assignment.area_id,
                    assignment.priority,
                    int(assignment.is_primary),
                    assignment.status.value,
                    assignment.notes,
                    assignment.created_by,
                    assignment.updated_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, assignment: BranchServiceArea) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE branch_service_areas
                SET priority=%s, is_primary=%s, status=%s, notes=%s, updated_by=%s
                WHERE assignment_id=%s
                """,
                (
                    assignment.priority,
                    int(assignment.is_primary),
                    assignment.status.value,
                    assignment.notes,
                    assignment.updated_by,
                    assignment.assignment_id,
                ),
            )
            return cur.rowcount > 0

    def delete(self, assignment_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM branch_service_areas WHERE assignment_id=%s", (int(assignment_id),))
            return cur.rowcount > 0
