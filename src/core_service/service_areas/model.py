from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.constants import DEFAULT_CURRENCY
from ..core.enums import AdministrativeLevel, AreaAction, AreaType, RecordStatus, ServiceType


@dataclass(frozen=True)
class ServiceArea:
    """Delivery coverage polygon with its administrative identity."""

    area_id: int
    code: str
    name: str
    level: AdministrativeLevel
    geometry: dict
    center: list
    area_type: AreaType = AreaType.INNER_CITY
    status: RecordStatus = RecordStatus.ACTIVE
    description: Optional[str] = None
    administrative: dict = field(default_factory=dict)
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class ServiceAreaHistory:
    history_id: int
    area_id: int
    action: AreaAction
    changes: list = field(default_factory=list)
    reason: Optional[str] = None
    performed_by: Optional[str] = None
    performed_at: Optional[datetime] = None


@dataclass(frozen=True)
class ServiceAreaPricing:
    pricing_id: int
    area_id: int
    service_type: ServiceType
    base_price: float
    price_per_km: float = 0.0
    price_per_kg: float = 0.0
    min_price: float = 0.0
    max_price: Optional[float] = None
    insurance_fee: float = 0.0
    packaging_fee: float = 0.0
    currency: str = DEFAULT_CURRENCY
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    status: RecordStatus = RecordStatus.ACTIVE
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def active_on(self, day: date) -> bool:
        if self.status != RecordStatus.ACTIVE:
            return False
        if self.effective_from and day < self.effective_from:
            return False
        if self.effective_to and day > self.effective_to:
            return False
        return True

    def quote(self, distance_km: float, weight_kg: float) -> dict:
        """Price breakdown. Clamping applies before the flat fees are added."""
        distance_charge = distance_km * self.price_per_km
        weight_charge = weight_kg * self.price_per_kg
        subtotal = max(self.base_price + distance_charge + weight_charge, self.min_price)
        if self.max_price is not None:
            subtotal = min(subtotal, self.max_price)
        total = subtotal + self.insurance_fee + self.packaging_fee
        return {
            "base_price": round(self.base_price, 2),
            "distance_charge": round(distance_charge, 2),
            "weight_charge": round(weight_charge, 2),
            "subtotal": round(subtotal, 2),
            "insurance_fee": round(self.insurance_fee, 2),
            "packaging_fee": round(self.packaging_fee, 2),
            "total": round(total, 2),
            "currency": self.currency,
        }


@dataclass(frozen=True)
class BranchServiceArea:
    """Branch coverage of an area. Lower priority number wins."""

    assignment_id: int
    branch_id: int
    area_id: int
    priority: int = 1
    is_primary: bool = False
    status: RecordStatus = RecordStatus.ACTIVE
    notes: Optional[str] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
