from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..common.serialization import dumps, loads
from ..core.enums import AdministrativeLevel, AreaAction, AreaType, RecordStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import ServiceArea, ServiceAreaHistory
from .repository import ServiceAreaHistoryRepository, ServiceAreaRepository


def _to_area(r: Dict[str, Any]) -> ServiceArea:
    return ServiceArea(
        area_id=int(r["area_id"]),
        code=r["code"],
        name=r["name"],
        level=AdministrativeLevel(r["level"]),
        geometry=loads(r.get("geometry"), {}),
        center=loads(r.get("center"), []),
        area_type=AreaType(r["area_type"]),
        status=RecordStatus(r["status"]),
        description=r.get("description"),
        administrative=loads(r.get("administrative"), {}),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLServiceAreaRepository(ServiceAreaRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, area_id: int) -> Optional[ServiceArea]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM service_areas WHERE area_id=%s", (int(area_id),))
            r = fetchone(cur)
            return _to_area(r) if r else None

    def get_by_code(self, code: str) -> Optional[ServiceArea]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM service_areas WHERE code=%s", (code,))
            r = fetchone(cur)
            return _to_area(r) if r else None

    def list(
        self,
        *,
        level: Optional[AdministrativeLevel] = None,
        area_type: Optional[AreaType] = None,
        status: Optional[RecordStatus] = None,
        province: Optional[str] = None,
        city: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[ServiceArea]:
        like = f"%{search}%" if search else None
        where, params = build_where(
            [
                ("level=%s", level.value if level else None),
                ("area_type=%s", area_type.value if area_type else None),
                ("status=%s", status.value if status else None),
                ("JSON_UNQUOTE(JSON_EXTRACT(administrative, '$.province'))=%s", province),
                ("JSON_UNQUOTE(JSON_EXTRACT(administrative, '$.city'))=%s", city),
                ("(code LIKE %s OR name LIKE %s)", (like, like) if like else None),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM service_areas {where} ORDER BY code", tuple(params))
            return [_to_area(r) for r in fetchall(cur)]

    def create(self, area: ServiceArea) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO service_areas(
                    code, name, description, administrative, level, geometry, center, area_type, status,
                    created_by, updated_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    area.code,
                    area.name,
                    area.description,
                    dumps(area.administrative),
                    area.level.value,
                    dumps(area.geometry),
                    dumps(area.center),
                    area.area_type.value,
                    area.status.value,
                    area.created_by,
                    area.updated_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, area: ServiceArea) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE service_areas
                SET code=%s, name=%s, description=%s, administrative=%s, level=%s, geometry=%s, center=%s,
                    area_type=%s, status=%s, updated_by=%s
                WHERE area_id=%s
                """,
                (
                    area.code,
                    area.name,
                    area.description,
                    dumps(area.administrative),
                    area.level.value,
                    dumps(area.geometry),
                    dumps(area.center),
                    area.area_type.value,
                    area.status.value,
                    area.updated_by,
                    area.area_id,
                ),
            )
            return cur.rowcount > 0

    def delete(self, area_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM service_areas WHERE area_id=%s", (int(area_id),))
            return cur.rowcount > 0


class MySQLServiceAreaHistoryRepository(ServiceAreaHistoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, entry: ServiceAreaHistory) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO service_area_history(area_id, action, changes, reason, performed_by, performed_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(entry.area_id),
                    entry.action.value,
                    dumps(entry.changes),
                    entry.reason,
                    entry.performed_by,
                    entry.performed_at,
                ),
            )
            return int(cur.lastrowid)

    def list_for_area(self, area_id: int, *, action: Optional[AreaAction] = None) -> Sequence[ServiceAreaHistory]:
        where, params = build_where(
            [
                ("area_id=%s", int(area_id)),
                ("action=%s", action.value if action else None),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT * FROM service_area_history {where} ORDER BY performed_at DESC, history_id DESC",
                tuple(params),
            )
            return [
                ServiceAreaHistory(
                    history_id=int(r["history_id"]),
                    area_id=int(r["area_id"]),
                    action=AreaAction(r["action"]),
                    changes=loads(r.get("changes"), []),
                    reason=r.get("reason"),
                    performed_by=r.get("performed_by"),
                    performed_at=r.get("performed_at"),
                )
                for r in fetchall(cur)
            ]
