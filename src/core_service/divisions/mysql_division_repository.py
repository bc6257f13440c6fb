from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..common.serialization import dumps, loads
from ..core.enums import DivisionStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, escape_like, fetchall, fetchone
from .model import Division
from .repository import DivisionRepository


def _opt_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


def _to_division(r: Dict[str, Any]) -> Division:
    return Division(
        division_id=int(r["division_id"]),
        code=r["code"],
        name=r["name"],
        branch_id=_opt_int(r.get("branch_id")),
        parent_id=_opt_int(r.get("parent_id")),
        path=r["path"],
        level=int(r["level"]),
        description=r.get("description"),
        head_position_id=_opt_int(r.get("head_position_id")),
        status=DivisionStatus(r["status"]),
        status_reason=r.get("status_reason"),
        budget=loads(r.get("budget"), {}),
        metrics=loads(r.get("metrics"), {}),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _params(d: Division) -> tuple:
    return (
        d.code,
        d.name,
        d.branch_id,
        d.parent_id,
        d.path,
        d.level,
        d.description,
        d.head_position_id,
        d.status.value,
        d.status_reason,
        dumps(d.budget),
        dumps(d.metrics),
    )


class MySQLDivisionRepository(DivisionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _one(self, where: str, params: tuple) -> Optional[Division]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM divisions WHERE {where}", params)
            r = fetchone(cur)
            return _to_division(r) if r else None

    def _many(self, where: str, params: tuple, order: str = "path") -> Sequence[Division]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM divisions {where} ORDER BY {order}", params)
            return [_to_division(r) for r in fetchall(cur)]

    def get_by_id(self, division_id: int) -> Optional[Division]:
        return self._one("division_id=%s", (int(division_id),))

    def get_by_code(self, code: str) -> Optional[Division]:
        return self._one("code=%s", (code,))

    def list(
        self,
        *,
        branch_id: Optional[int] = None,
        parent_id: Optional[int] = None,
        status: Optional[DivisionStatus] = None,
        search: Optional[str] = None,
    ) -> Sequence[Division]:
        like = f"%{search}%" if search else None
        where, params = build_where(
            [
                ("branch_id=%s", branch_id),
                ("parent_id=%s", parent_id),
                ("status=%s", status.value if status else None),
                ("(code LIKE %s OR name LIKE %s)", (like, like) if like else None),
            ]
        )
        return self._many(where, tuple(params))

    def list_children(self, parent_id: int) -> Sequence[Division]:
        return self._many("WHERE parent_id=%s", (int(parent_id),), order="code")

    def list_descendants(self, path: str) -> Sequence[Division]:
        return self._many("WHERE path LIKE %s ESCAPE '!'", (f"{escape_like(path)}.%",), order="level")

    def create(self, division: Division) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO divisions(
                    code, name, branch_id, parent_id, path, level, description, head_position_id,
                    status, status_reason, budget, metrics, created_by, updated_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _params(division) + (division.created_by, division.updated_by),
            )
            return int(cur.lastrowid)

    def update(self, division: Division) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE divisions
                SET code=%s, name=%s, branch_id=%s, parent_id=%s, path=%s, level=%s, description=%s,
                    head_position_id=%s, status=%s, status_reason=%s, budget=%s, metrics=%s, updated_by=%s
                WHERE division_id=%s
                """,
                _params(division) + (division.updated_by, division.division_id),
            )
            return cur.rowcount > 0

    def delete(self, division_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM divisions WHERE division_id=%s", (int(division_id),))
            return cur.rowcount > 0
