from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import replace
from typing import Any, Callable, ContextManager, List, Optional

from ..common.datetime_utils import now_local
from ..common.geo import haversine_meters, point_in_geometry, polygon_centroid, validate_geometry, validate_point
from ..common.pagination import Page, paginate
from ..common.serialization import diff_fields
from ..common.validators import require_dict, require_enum, require_fields, require_max_length, require_non_empty, require_non_negative
from ..core.constants import MAX_AREA_CODE_LENGTH
from ..core.enums import AdministrativeLevel, AreaAction, AreaType, RecordStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .model import ServiceArea, ServiceAreaHistory
from .repository import (
    BranchServiceAreaRepository,
    ServiceAreaHistoryRepository,
    ServiceAreaPricingRepository,
    ServiceAreaRepository,
)

logger = logging.getLogger(__name__)

_ADMINISTRATIVE_KEYS = ("province", "city", "district", "subdistrict")
_EDITABLE = ("name", "description")
# most specific first when several areas contain a point
_LEVEL_RANK = {
    AdministrativeLevel.SUBDISTRICT: 0,
    AdministrativeLevel.DISTRICT: 1,
    AdministrativeLevel.CITY: 2,
    AdministrativeLevel.PROVINCE: 3,
}


def _administrative(value: Any) -> dict:
    value = require_dict(value, "Administrative")
    out = {key: str(value[key]).strip() for key in _ADMINISTRATIVE_KEYS if value.get(key)}
    postal_codes = value.get("postal_codes") or []
    if not isinstance(postal_codes, list):
        raise ValidationError("Postal codes must be a list")
    out["postal_codes"] = [str(code).strip() for code in postal_codes if str(code).strip()]
    return out


class ServiceAreaService:
    def __init__(
        self,
        areas: ServiceAreaRepository,
        history: ServiceAreaHistoryRepository,
        pricing: ServiceAreaPricingRepository,
        assignments: BranchServiceAreaRepository,
        *,
        transaction: Callable[[], ContextManager] = nullcontext,
    ):
        self._areas = areas
        self._history = history
        self._pricing = pricing
        self._assignments = assignments
        self._transaction = transaction

    def _require(self, area_id: int) -> ServiceArea:
        area = self._areas.get_by_id(int(area_id))
        if not area:
            raise NotFoundError("Service area not found")
        return area

    @staticmethod
    def _normalize_code(value: Any) -> str:
        code = require_non_empty(value, "Area code").upper()
        return require_max_length(code, "Area code", MAX_AREA_CODE_LENGTH)

    def record(self, area_id: int, action: AreaAction, *, changes=None, reason=None, user_id=None) -> None:
        self._history.create(
            ServiceAreaHistory(
                history_id=0,
                area_id=area_id,
                action=action,
                changes=list(changes or []),
                reason=reason,
                performed_by=user_id,
                performed_at=now_local(),
            )
        )

    def create_area(self, data: dict, *, user_id: str) -> ServiceArea:
        require_fields(data, ("code", "name", "level", "geometry"))
        code = self._normalize_code(data["code"])
        if self._areas.get_by_code(code):
            raise ConflictError(f"Service area with code {code} already exists")

        geometry = validate_geometry(data["geometry"])
        area = ServiceArea(
            area_id=0,
            code=code,
            name=require_non_empty(data["name"], "Area name"),
            level=require_enum(data["level"], AdministrativeLevel, "level"),
            geometry=geometry,
            center=polygon_centroid(geometry),
            area_type=require_enum(data.get("area_type", AreaType.INNER_CITY), AreaType, "area type"),
            status=require_enum(data.get("status", RecordStatus.ACTIVE), RecordStatus, "status"),
            description=data.get("description"),
            administrative=_administrative(data.get("administrative") or {}),
            created_by=user_id,
            updated_by=user_id,
            created_at=now_local(),
            updated_at=now_local(),
        )
        area = replace(area, area_id=self._areas.create(area))
        self.record(area.area_id, AreaAction.CREATE, changes=[{"field": "code", "old": None, "new": code}], user_id=user_id)
        logger.info("Service area %s created (id=%s)", code, area.area_id)
        return area

    def get_area(self, area_id: int) -> ServiceArea:
        return self._require(area_id)

    def list_areas(
        self,
        *,
        level: Optional[str] = None,
        area_type: Optional[str] = None,
        status: Optional[str] = None,
        province: Optional[str] = None,
        city: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[ServiceArea]:
        rows = self._areas.list(
            level=require_enum(level, AdministrativeLevel, "level") if level else None,
            area_type=require_enum(area_type, AreaType, "area type") if area_type else None,
            status=require_enum(status, RecordStatus, "status") if status else None,
            province=province.strip() if province else None,
            city=city.strip() if city else None,
            search=search.strip() if search else None,
        )
        return paginate(list(rows), page, limit)

    def update_area(self, area_id: int, data: dict, *, user_id: str) -> ServiceArea:
        area = self._require(area_id)
        changes: dict[str, Any] = {}

        if data.get("code") is not None:
            code = self._normalize_code(data["code"])
            other = self._areas.get_by_code(code)
            if other and other.area_id != area.area_id:
                raise ConflictError(f"Service area with code {code} already exists")
            changes["code"] = code

        for key in _EDITABLE:
            if key in data:
                changes[key] = data[key]
        if "name" in changes:
            changes["name"] = require_non_empty(changes["name"], "Area name")
        if data.get("level") is not None:
            changes["level"] = require_enum(data["level"], AdministrativeLevel, "level")
        if data.get("area_type") is not None:
            changes["area_type"] = require_enum(data["area_type"], AreaType, "area type")
        if "administrative" in data:
            changes["administrative"] = _administrative(data["administrative"] or {})

        boundary: dict[str, Any] = {}
        if data.get("geometry") is not None:
            geometry = validate_geometry(data["geometry"])
            boundary = {"geometry": geometry, "center": polygon_centroid(geometry)}

        status: dict[str, Any] = {}
        if data.get("status") is not None:
            status = {"status": require_enum(data["status"], RecordStatus, "status")}

        updated = replace(area, **changes, **boundary, **status, updated_by=user_id, updated_at=now_local())
        self._areas.update(updated)

        reason = data.get("reason")
        for action, fields in (
            (AreaAction.UPDATE, changes),
            (AreaAction.BOUNDARY_CHANGE, boundary),
            (AreaAction.STATUS_CHANGE, status),
        ):
            diff = diff_fields({k: getattr(area, k) for k in fields}, fields)
            if diff:
                self.record(area.area_id, action, changes=diff, reason=reason, user_id=user_id)
        return updated

    def delete_area(self, area_id: int, *, force: bool = False, user_id: str) -> None:
        area = self._require(area_id)
        assignments = self._assignments.list(area_id=area.area_id)
        pricing = self._pricing.list(area_id=area.area_id)
        if (assignments or pricing) and not force:
            raise ValidationError(
                f"Cannot delete service area {area.code}: it has {len(assignments)} branch assignments "
                f"and {len(pricing)} pricing entries"
            )

        with self._transaction():
            for assignment in assignments:
                self._assignments.delete(assignment.assignment_id)
            for entry in pricing:
                self._pricing.delete(entry.pricing_id)
            if not self._areas.delete(area.area_id):
                raise ValidationError("Failed to delete service area")
            self.record(
                area.area_id, AreaAction.DELETE, changes=[{"field": "code", "old": area.code, "new": None}], user_id=user_id
            )
        logger.info(
            "Service area %s deleted by %s (%s assignments, %s pricing removed)",
            area.code,
            user_id,
            len(assignments),
            len(pricing),
        )

    def find_by_point(self, longitude: Any, latitude: Any) -> List[ServiceArea]:
        """Active areas containing the point, most specific level first."""
        lon, lat = validate_point(longitude, latitude)
        matches = [a for a in self._areas.list(status=RecordStatus.ACTIVE) if point_in_geometry(lon, lat, a.geometry)]
        return sorted(matches, key=lambda a: (_LEVEL_RANK[a.level], a.code))

    def find_near_point(self, longitude: Any, latitude: Any, max_distance: Any) -> List[dict]:
        lon, lat = validate_point(longitude, latitude)
        limit = require_non_negative(max_distance, "Maximum distance")
        near = []
        for area in self._areas.list(status=RecordStatus.ACTIVE):
            if not area.center:
                continue
            distance = haversine_meters(lat, lon, float(area.center[1]), float(area.center[0]))
            if distance <= limit:
                near.append({"area": area, "distance_meters": round(distance, 2)})
        near.sort(key=lambda item: item["distance_meters"])
        return near

    def get_history(self, area_id: int, *, action: Optional[str] = None) -> List[ServiceAreaHistory]:
        area = self._require(area_id)
        return list(
            self._history.list_for_area(
                area.area_id,
                action=require_enum(action, AreaAction, "action") if action else None,
            )
        )
