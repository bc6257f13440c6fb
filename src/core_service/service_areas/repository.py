from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import AdministrativeLevel, AreaAction, AreaType, RecordStatus, ServiceType
from .model import BranchServiceArea, ServiceArea, ServiceAreaHistory, ServiceAreaPricing


class ServiceAreaRepository(Protocol):
    def get_by_id(self, area_id: int) -> Optional[ServiceArea]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[ServiceArea]:
        raise NotImplementedError

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
        raise NotImplementedError

    def create(self, area: ServiceArea) -> int:
        raise NotImplementedError

    def update(self, area: ServiceArea) -> bool:
        raise NotImplementedError

    def delete(self, area_id: int) -> bool:
        raise NotImplementedError


class ServiceAreaHistoryRepository(Protocol):
    def create(self, entry: ServiceAreaHistory) -> int:
        raise NotImplementedError

    def list_for_area(self, area_id: int, *, action: Optional[AreaAction] = None) -> Sequence[ServiceAreaHistory]:
        """Newest first."""

        raise NotImplementedError


class ServiceAreaPricingRepository(Protocol):
    def get_by_id(self, pricing_id: int) -> Optional[ServiceAreaPricing]:
        raise NotImplementedError

    def get_for(self, area_id: int, service_type: ServiceType) -> Optional[ServiceAreaPricing]:
        raise NotImplementedError

    def list(
        self,
        *,
        area_id: Optional[int] = None,
        service_type: Optional[ServiceType] = None,
        status: Optional[RecordStatus] = None,
    ) -> Sequence[ServiceAreaPricing]:
        raise NotImplementedError

    def create(self, pricing: ServiceAreaPricing) -> int:
        raise NotImplementedError

    def update(self, pricing: ServiceAreaPricing) -> bool:
        raise NotImplementedError

    def delete(self, pricing_id: int) -> bool:
        raise NotImplementedError


class BranchServiceAreaRepository(Protocol):
    def get_by_id(self, assignment_id: int) -> Optional[BranchServiceArea]:
        raise NotImplementedError

    def get_for(self, branch_id: int, area_id: int) -> Optional[BranchServiceArea]:
        raise NotImplementedError

    def list(
        self,
        *,
        branch_id: Optional[int] = None,
        area_id: Optional[int] = None,
        status: Optional[RecordStatus] = None,
    ) -> Sequence[BranchServiceArea]:
        """Ordered by priority, then primary first."""

        raise NotImplementedError

    def create(self, assignment: BranchServiceArea) -> int:
        raise NotImplementedError

    def update(self, assignment: BranchServiceArea) -> bool:
        raise NotImplementedError

    def delete(self, assignment_id: int) -> bool:
        raise NotImplementedError
