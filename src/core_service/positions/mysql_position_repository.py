from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..common.serialization import dumps, loads
from ..core.enums import PositionStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import Position
from .repository import PositionRepository


def _to_position(r: Dict[str, Any]) -> Position:
    return Position(
        position_id=int(r["position_id"]),
        code=r["code"],
        title=r["title"],
        division_id=int(r["division_id"]),
        report_to_id=int(r["report_to_id"]) if r.get("report_to_id") is not None else None,
        level=int(r["level"]),
        is_head=bool(r.get("is_head")),
        status=PositionStatus(r["status"]),
        description=r.get("description"),
        salary_range=loads(r.get("salary_range"), {}),
        requirements=loads(r.get("requirements"), []),
        responsibilities=loads(r.get("responsibilities"), []),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _params(p: Position) -> tuple:
    return (
        p.code,
        p.title,
        int(p.division_id),
        p.report_to_id,
        int(p.level),
        1 if p.is_head else 0,
        p.status.value,
        p.description,
        dumps(p.salary_range),
        dumps(p.requirements),
        dumps(p.responsibilities),
    )


class MySQLPositionRepository(PositionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, position_id: int) -> Optional[Position]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM positions WHERE position_id=%s", (int(position_id),))
            r = fetchone(cur)
            return _to_position(r) if r else None

    def get_by_code(self, code: str) -> Optional[Position]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM positions WHERE code=%s", (code,))
            r = fetchone(cur)
            return _to_position(r) if r else None

    def list(
        self,
        *,
        division_id: Optional[int] = None,
        report_to_id: Optional[int] = None,
        status: Optional[PositionStatus] = None,
        search: Optional[str] = None,
    ) -> Sequence[Position]:
        like = f"%{search}%" if search else None
        where, params = build_where(
            [
                ("division_id=%s", division_id),
                ("report_to_id=%s", report_to_id),
                ("status=%s", status.value if status else None),
                ("(code LIKE %s OR title LIKE %s)", (like, like) if like else None),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM positions {where} ORDER BY level, code", tuple(params))
            return [_to_position(r) for r in fetchall(cur)]

    def create(self, position: Position) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO positions(
                    code, title, division_id, report_to_id, level, is_head, status, description,
                    salary_range, requirements, responsibilities, created_by, updated_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _params(position) + (position.created_by, position.updated_by),
            )
            return int(cur.lastrowid)

    def update(self, position: Position) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE positions
                SET code=%s, title=%s, division_id=%s, report_to_id=%s, level=%s, is_head=%s, status=%s,
                    description=%s, salary_range=%s, requirements=%s, responsibilities=%s, updated_by=%s
                WHERE position_id=%s
                """,
                _params(position) + (position.updated_by, position.position_id),
            )
            return cur.rowcount > 0

    def delete(self, position_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM positions WHERE position_id=%s", (int(position_id),))
            return cur.rowcount > 0
