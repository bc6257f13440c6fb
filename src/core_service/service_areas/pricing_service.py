from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any, List, Optional

from ..common.datetime_utils import now_local, parse_optional_date
from ..common.validators import require_enum, require_fields, require_non_empty, require_non_negative
from ..core.constants import DEFAULT_CURRENCY
from ..core.enums import RecordStatus, ServiceType
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .model import ServiceAreaPricing
from .repository import ServiceAreaPricingRepository, ServiceAreaRepository

logger = logging.getLogger(__name__)

_FEES = ("price_per_km", "price_per_kg", "min_price", "insurance_fee", "packaging_fee")


class ServiceAreaPricingService:
    def __init__(self, pricing: ServiceAreaPricingRepository, areas: ServiceAreaRepository):
        self._pricing = pricing
        self._areas = areas

    def _require(self, pricing_id: int) -> ServiceAreaPricing:
        pricing = self._pricing.get_by_id(int(pricing_id))
        if not pricing:
            raise NotFoundError("Pricing not found")
        return pricing

    def _require_area(self, area_id: Any) -> int:
        if area_id is None or not self._areas.get_by_id(int(area_id)):
            raise NotFoundError("Service area not found")
        return int(area_id)

    @staticmethod
    def _check(pricing: ServiceAreaPricing) -> ServiceAreaPricing:
        if pricing.max_price is not None and pricing.min_price > pricing.max_price:
            raise ValidationError("Minimum price cannot be greater than maximum price")
        if pricing.effective_from and pricing.effective_to and pricing.effective_to < pricing.effective_from:
            raise ValidationError("Effective end date must be after the start date")
        return pricing

    @staticmethod
    def _values(data: dict) -> dict:
        values: dict[str, Any] = {}
        if "base_price" in data:
            values["base_price"] = require_non_negative(data["base_price"], "base_price")
        for key in _FEES:
            if key in data:
                values[key] = require_non_negative(data[key] or 0, key)
        if "max_price" in data:
            values["max_price"] = (
                require_non_negative(data["max_price"], "max_price") if data["max_price"] is not None else None
            )
        if "currency" in data:
            values["currency"] = require_non_empty(data["currency"], "Currency").upper()
        if "effective_from" in data:
            values["effective_from"] = parse_optional_date(data["effective_from"], "effective_from")
        if "effective_to" in data:
            values["effective_to"] = parse_optional_date(data["effective_to"], "effective_to")
        if data.get("status") is not None:
            values["status"] = require_enum(data["status"], RecordStatus, "status")
        return values

    def _ensure_unique(self, area_id: int, service_type: ServiceType, pricing_id: int = 0) -> None:
        existing = self._pricing.get_for(area_id, service_type)
        if existing and existing.pricing_id != pricing_id:
            raise ConflictError(f"Pricing for {service_type.value} already exists in this service area")

    def create_pricing(self, data: dict, *, user_id: str) -> ServiceAreaPricing:
        require_fields(data, ("area_id", "service_type", "base_price"))
        area_id = self._require_area(data["area_id"])
        service_type = require_enum(data["service_type"], ServiceType, "service type")
        self._ensure_unique(area_id, service_type)

        values = self._values(data)
        pricing = self._check(
            ServiceAreaPricing(
                pricing_id=0,
                area_id=area_id,
                service_type=service_type,
                **{"currency": DEFAULT_CURRENCY, **values},
                created_by=user_id,
                updated_by=user_id,
                created_at=now_local(),
                updated_at=now_local(),
            )
        )
        pricing = replace(pricing, pricing_id=self._pricing.create(pricing))
        logger.info("Pricing %s created for area %s", service_type.value, area_id)
        return pricing

    def get_pricing(self, pricing_id: int) -> ServiceAreaPricing:
        return self._require(pricing_id)

    def list_pricing(
        self,
        *,
        area_id: Optional[int] = None,
        service_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[ServiceAreaPricing]:
        if area_id is not None:
            self._require_area(area_id)
        return list(
            self._pricing.list(
                area_id=area_id,
                service_type=require_enum(service_type, ServiceType, "service type") if service_type else None,
                status=require_enum(status, RecordStatus, "status") if status else None,
            )
        )

    def update_pricing(self, pricing_id: int, data: dict, *, user_id: str) -> ServiceAreaPricing:
        pricing = self._require(pricing_id)
        changes = self._values(data)
        if data.get("area_id") is not None:
            changes["area_id"] = self._require_area(data["area_id"])
        if data.get("service_type") is not None:
            changes["service_type"] = require_enum(data["service_type"], ServiceType, "service type")

        updated = self._check(replace(pricing, **changes, updated_by=user_id, updated_at=now_local()))
        if updated.area_id != pricing.area_id or updated.service_type != pricing.service_type:
            self._ensure_unique(updated.area_id, updated.service_type, pricing.pricing_id)
        self._pricing.update(updated)
        return updated

    def delete_pricing(self, pricing_id: int, *, user_id: str) -> None:
        pricing = self._require(pricing_id)
        if not self._pricing.delete(pricing.pricing_id):
            raise ValidationError("Failed to delete pricing")
        logger.info("Pricing %s deleted by %s", pricing.pricing_id, user_id)

    def calculate_price(
        self,
        area_id: Any,
        service_type: Any,
        distance_km: Any,
        weight_kg: Any,
        on_date: Optional[date] = None,
    ) -> dict:
        area_id = self._require_area(area_id)
        service_type = require_enum(service_type, ServiceType, "service type")
        distance = require_non_negative(distance_km, "distance_km")
        weight = require_non_negative(weight_kg, "weight_kg")
        day = on_date or now_local().date()

        pricing = self._pricing.get_for(area_id, service_type)
        if not pricing or not pricing.active_on(day):
            raise NotFoundError(f"No active {service_type.value} pricing for this service area on {day.isoformat()}")

        return {
            "area_id": area_id,
            "service_type": service_type.value,
            "distance_km": distance,
            "weight_kg": weight,
            **pricing.quote(distance, weight),
        }
