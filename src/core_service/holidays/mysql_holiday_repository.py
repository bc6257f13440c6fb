from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Sequence

from ..common.serialization import dumps, loads
from ..core.enums import HalfDayPortion, HolidayType, RecordStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import Holiday
from .repository import HolidayRepository


def _to_holiday(r: Dict[str, Any]) -> Holiday:
    return Holiday(
        holiday_id=int(r["holiday_id"]),
        name=r["name"],
        date=r["date"],
        month=int(r["month"]),
        day=int(r["day"]),
        year=int(r["year"]),
        type=HolidayType(r["type"]),
        is_recurring=bool(r["is_recurring"]),
        is_half_day=bool(r["is_half_day"]),
        half_day_portion=HalfDayPortion(r["half_day_portion"]),
        description=r.get("description"),
        applicable_branches=loads(r.get("applicable_branches"), []),
        applicable_divisions=loads(r.get("applicable_divisions"), []),
        status=RecordStatus(r["status"]),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLHolidayRepository(HolidayRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, holiday_id: int) -> Optional[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM holidays WHERE holiday_id=%s", (int(holiday_id),))
            r = fetchone(cur)
            return _to_holiday(r) if r else None

    def find(self, day: date, name: str) -> Optional[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM holidays WHERE date=%s AND name=%s", (day, name))
            r = fetchone(cur)
            return _to_holiday(r) if r else None

    def list(
        self,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        type: Optional[HolidayType] = None,
        status: Optional[RecordStatus] = None,
        is_recurring: Optional[bool] = None,
    ) -> Sequence[Holiday]:
        where, params = build_where(
            [
                ("date>=%s", start),
                ("date<=%s", end),
                ("type=%s", type.value if type else None),
                ("status=%s", status.value if status else None),
                ("is_recurring=%s", int(is_recurring) if is_recurring is not None else None),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM holidays {where} ORDER BY date, name", tuple(params))
            return [_to_holiday(r) for r in fetchall(cur)]

    def create(self, holiday: Holiday) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO holidays(
                    name, date, month, day, year, type, is_recurring, is_half_day, half_day_portion,
                    description, applicable_branches, applicable_divisions, status, created_by, updated_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    holiday.name,
                    holiday.date,
                    holiday.month,
                    holiday.day,
                    holiday.year,
                    holiday.type.value,
                    int(holiday.is_recurring),
                    int(holiday.is_half_day),
                    holiday.half_day_portion.value,
                    holiday.description,
                    dumps(holiday.applicable_branches),
                    dumps(holiday.applicable_divisions),
                    holiday.status.value,
                    holiday.created_by,
                    holiday.updated_by,
                ),
            )
            return int(cur.lastrowid)

    def update(self, holiday: Holiday) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE holidays
                SET name=%s, date=%s, month=%s, day=%s, year=%s, type=%s, is_recurring=%s, is_half_day=%s,
                    half_day_portion=%s, description=%s, applicable_branches=%s, applicable_divisions=%s,
                    status=%s, updated_by=%s
                WHERE holiday_id=%s
                """,
                (
                    holiday.name,
                    holiday.date,
                    holiday.month,
                    holiday.day,
                    holiday.year,
                    holiday.type.value,
                    int(holiday.is_recurring),
                    int(holiday.is_half_day),
                    holiday.half_day_portion.value,
                    holiday.description,
                    dumps(holiday.applicable_branches),
                    dumps(holiday.applicable_divisions),
                    holiday.status.value,
                    holiday.updated_by,
                    holiday.holiday_id,
                ),
            )
            return cur.rowcount > 0

    def delete(self, holiday_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM holidays WHERE holiday_id=%s", (int(holiday_id),))
            return cur.rowcount > 0
