from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..core.enums import RecordStatus, ServiceType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import ServiceAreaPricing
from .repository import ServiceAreaPricingRepository

_MONEY = ("base_price", "price_per_km", "price_per_kg", "min_price", "insurance_fee", "packaging_fee")


def _to_pricing(r: Dict[str, Any]) -> ServiceAreaPricing:
    return ServiceAreaPricing(
        pricing_id=int(r["pricing_id"]),
        area_id=int(r["area_id"]),
        service_type=ServiceType(r["service_type"]),
        max_price=float(r["max_price"]) if r.get("max_price") is not None else None,
        currency=r["currency"],
        effective_from=r.get("effective_from"),
        effective_to=r.get("effective_to"),
        status=RecordStatus(r["status"]),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
        **{name: float(r.get(name) or 0) for name in _MONEY},
    )


def _params(p: ServiceAreaPricing) -> tuple:
    return (
        p.area_id,
        p.service_type.value,
        *(getattr(p, name) for name in _MONEY),
        p.max_price,
        p.currency,
        p.effective_from,
        p.effective_to,
        p.status.value,
    )


class MySQLServiceAreaPricingRepository(ServiceAreaPricingRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, pricing_id: int) -> Optional[ServiceAreaPricing]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM service_area_pricing WHERE pricing_id=%s", (int(pricing_id),))
            r = fetchone(cur)
            return _to_pricing(r) if r else None

    def get_for(self, area_id: int, service_type: ServiceType) -> Optional[ServiceAreaPricing]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT * FROM service_area_pricing WHERE area_id=%s AND service_type=%s",
                (int(area_id), service_type.value),
            )
            r = fetchone(cur)
            return _to_pricing(r) if r else None

    def list(
        self,
        *,
        area_id: Optional[int] = None,
        service_type: Optional[ServiceType] = None,
        status: Optional[RecordStatus] = None,
    ) -> Sequence[ServiceAreaPricing]:
        where, params = build_where(
            [
                ("area_id=%s", area_id),
                ("service_type=%s", service_type.value if service_type else None),
                ("status=%s", status.value if status else None),
            ]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM service_area_pricing {where} ORDER BY area_id, service_type", tuple(params))
            return [_to_pricing(r) for r in fetchall(cur)]

    def create(self, pricing: ServiceAreaPricing) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO service_area_pricing(
                    area_id, service_type, {', '.join(_MONEY)}, max_price, currency,
                    effective_from, effective_to, status, created_by, updated_by
                )
                VALUES({', '.join(['%s'] * (len(_MONEY) + 9))})
                """,
                _params(pricing) + (pricing.created_by, pricing.updated_by),
            )
            return int(cur.lastrowid)

    def update(self, pricing: ServiceAreaPricing) -> bool:
        money_set = ", ".join(f"{name}=%s" for name in _MONEY)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE service_area_pricing
                SET area_id=%s, service_type=%s, {money_set}, max_price=%s, currency=%s,
                    effective_from=%s, effective_to=%s, status=%s, updated_by=%s
                WHERE pricing_id=%s
                """,
                _params(pricing) + (pricing.updated_by, pricing.pricing_id),
            )
            return cur.rowcount > 0

    def delete(self, pricing_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM service_area_pricing WHERE pricing_id=%s", (int(pricing_id),))
            return cur.rowcount > 0
