from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..common.serialization import dumps, loads
from ..core.enums import ChangeType, EntityType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import OrganizationalChange
from .repository import OrgChangeRepository


def _to_change(r: Dict[str, Any]) -> OrganizationalChange:
    return OrganizationalChange(
        change_id=int(r["change_id"]),
        entity_type=EntityType(r["entity_type"]),
        entity_id=int(r["entity_id"]),
        change_type=ChangeType(r["change_type"]),
        changes=loads(r.get("changes"), []),
        reason=r.get("reason"),
        changed_by=r.get("changed_by"),
        changed_at=r.get("changed_at"),
    )


class MySQLOrgChangeRepository(OrgChangeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, change: OrganizationalChange) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO organizational_changes(entity_type, entity_id, change_type, changes, reason, changed_by, changed_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    change.entity_type.value,
                    int(change.entity_id),
                    change.change_type.value,
                    dumps(change.changes),
                    change.reason,
                    change.changed_by,
                    change.changed_at,
                ),
            )
            return int(cur.lastrowid)

    def get_by_id(self, change_id: int) -> Optional[OrganizationalChange]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM organizational_changes WHERE change_id=%s", (int(change_id),))
            r = fetchone(cur)
            return _to_change(r) if r else None

    def list(
        self,
        *,
        entity_type: Optional[EntityType] = None,
        entity_id: Optional[int] = None,
        change_type: Optional[ChangeType] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Sequence[OrganizationalChange]:
        like = f"%{search}%" if search else None
        where, params = build_where(
            [
                ("entity_type=%s", entity_type.value if entity_type else None),
                ("entity_id=%s", entity_id),
                ("change_type=%s", change_type.value if change_type else None),
                ("changed_at>=%s", start),
                ("changed_at<=%s", end),
                ("(reason LIKE %s OR CAST(changes AS CHAR) LIKE %s)", (like, like) if like else None),
            ]
        )
        sql = f"SELECT * FROM organizational_changes {where} ORDER BY changed_at DESC, change_id DESC"
        if limit:
            sql += " LIMIT %s"
            params.append(int(limit))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_change(r) for r in fetchall(cur)]
