from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..common.serialization import dumps, loads
from ..core.enums import BranchStatus, BranchType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, escape_like, fetchall, fetchone
from .model import Branch
from .repository import BranchRepository

_COLUMNS = """
    branch_id, code, name, type, parent_id, level, path, status, status_reason,
    address, contact, coordinates, operational_hours, status_history, metrics,
    resources, documents, created_by, updated_by, created_at, updated_at
"""


def _to_branch(r: Dict[str, Any]) -> Branch:
    return Branch(
        branch_id=int(r["branch_id"]),
        code=r["code"],
        name=r["name"],
        type=BranchType(r["type"]),
        parent_id=int(r["parent_id"]) if r.get("parent_id") is not None else None,
        level=int(r["level"]),
        path=r["path"],
        status=BranchStatus(r["status"]),
        status_reason=r.get("status_reason"),
        address=loads(r.get("address"), {}),
        contact=loads(r.get("contact"), {}),
        coordinates=loads(r.get("coordinates")),
        operational_hours=loads(r.get("operational_hours"), []),
        status_history=loads(r.get("status_history"), []),
        metrics=loads(r.get("metrics"), {}),
        resources=loads(r.get("resources"), {}),
        documents=loads(r.get("documents"), []),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _params(b: Branch) -> tuple:
    return (
        b.code,
        b.name,
        b.type.value,
        b.parent_id,
        b.level,
        b.path,
        b.status.value,
        b.status_reason,
        dumps(b.address),
        dumps(b.contact),
        dumps(b.coordinates) if b.coordinates is not None else None,
        dumps(b.operational_hours),
        dumps(b.status_history),
        dumps(b.metrics),
        dumps(b.resources),
        dumps(b.documents),
    )


class MySQLBranchRepository(BranchRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, branch_id: int) -> Optional[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM branches WHERE branch_id=%s", (int(branch_id),))
            r = fetchone(cur)
            return _to_branch(r) if r else None

    def get_by_code(self, code: str) -> Optional[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM branches WHERE code=%s", (code,))
            r = fetchone(cur)
            return _to_branch(r) if r else None

    def list(
        self,
        *,
        type: Optional[BranchType] = None,
        status: Optional[BranchStatus] = None,
        parent_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Sequence[Branch]:
        like = f"%{search}%" if search else None
        where, params = build_where(
            [
                ("type=%s", type.value if type else None),
                ("status=%s", status.value if status else None),
                ("parent_id=%s", parent_id),
                ("(code LIKE %s OR name LIKE %s)", (like, like) if like else None),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM branches {where} ORDER BY path", tuple(params))
            return [_to_branch(r) for r in fetchall(cur)]

    def list_children(self, parent_id: int) -> Sequence[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM branches WHERE parent_id=%s ORDER BY code", (int(parent_id),))
            return [_to_branch(r) for r in fetchall(cur)]

    def list_descendants(self, path: str) -> Sequence[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM branches WHERE path LIKE %s ESCAPE '!' ORDER BY level",
                (f"{escape_like(path)}.%",),
            )
            return [_to_branch(r) for r in fetchall(cur)]

    def create(self, branch: Branch) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO branches(
                    code, name, type, parent_id, level, path, status, status_reason,
                    address, contact, coordinates, operational_hours, status_history,
                    metrics, resources, documents, created_by, updated_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _params(branch) + (branch.created_by, branch.updated_by),
            )
            return int(cur.lastrowid)

    def update(self, branch: Branch) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE branches
                SET code=%s, name=%s, type=%s, parent_id=%s, level=%s, path=%s, status=%s,
                    status_reason=%s, address=%s, contact=%s, coordinates=%s, operational_hours=%s,
                    status_history=%s, metrics=%s, resources=%s, documents=%s, updated_by=%s
                WHERE branch_id=%s
                """,
                _params(branch) + (branch.updated_by, branch.branch_id),
            )
            return cur.rowcount > 0

    def delete(self, branch_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM branches WHERE branch_id=%s", (int(branch_id),))
            return cur.rowcount > 0
