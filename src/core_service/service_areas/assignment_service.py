from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, List

from ..branches.repository import BranchRepository
from ..common.datetime_utils import now_local
from ..common.serialization import diff_fields
from ..common.validators import require_enum, require_fields, require_range
from ..core.enums import AreaAction, RecordStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .model import BranchServiceArea
from .repository import BranchServiceAreaRepository, ServiceAreaRepository
from .service import ServiceAreaService

logger = logging.getLogger(__name__)

MIN_PRIORITY = 1
MAX_PRIORITY = 10


class BranchServiceAreaService:
    def __init__(
        self,
        assignments: BranchServiceAreaRepository,
        areas: ServiceAreaRepository,
        branches: BranchRepository,
        area_service: ServiceAreaService,
    ):
        self._assignments = assignments
        self._areas = areas
        self._branches = branches
        self._area_service = area_service

    def _require(self, assignment_id: int) -> BranchServiceArea:
        assignment = self._assignments.get_by_id(int(assignment_id))
        if not assignment:
            raise NotFoundError("Branch service area assignment not found")
        return assignment

    @staticmethod
    def _priority(value: Any) -> int:
        return int(require_range(value, "Priority", MIN_PRIORITY, MAX_PRIORITY))

    def _demote_other_primaries(self, keep: BranchServiceArea, user_id: str) -> None:
        for other in self._assignments.list(area_id=keep.area_id):
            if other.assignment_id != keep.assignment_id and other.is_primary:
                self._assignments.update(replace(other, is_primary=False, updated_by=user_id, updated_at=now_local()))

    def assign(self, data: dict, *, user_id: str) -> BranchServiceArea:
        require_fields(data, ("branch_id", "area_id"))
        branch_id, area_id = int(data["branch_id"]), int(data["area_id"])
        if not self._branches.get_by_id(branch_id):
            raise NotFoundError("Branch not found")
        if not self._areas.get_by_id(area_id):
            raise NotFoundError("Service area not found")
        if self._assignments.get_for(branch_id, area_id):
            raise ConflictError("Branch is already assigned to this service area")

        assignment = BranchServiceArea(
            assignment_id=0,
            branch_id=branch_id,
            area_id=area_id,
            priority=self._priority(data.get("priority", MIN_PRIORITY)),
            is_primary=bool(data.get("is_primary", False)),
            status=require_enum(data.get("status", RecordStatus.ACTIVE), RecordStatus, "status"),
            notes=data.get("notes"),
            created_by=user_id,
            updated_by=user_id,
            created_at=now_local(),
            updated_at=now_local(),
        )
        assignment = replace(assignment, assignment_id=self._assignments.create(assignment))
        if assignment.is_primary:
            self._demote_other_primaries(assignment, user_id)

        self._area_service.record(
            area_id,
            AreaAction.ASSIGNMENT_CHANGE,
            changes=[{"field": "branch_id", "old": None, "new": branch_id}],
            reason=data.get("notes"),
            user_id=user_id,
        )
        logger.info("Branch %s assigned to service area %s", branch_id, area_id)
        return assignment

    def get_assignment(self, assignment_id: int) -> BranchServiceArea:
        return self._require(assignment_id)

    def update_assignment(self, assignment_id: int, data: dict, *, user_id: str) -> BranchServiceArea:
        assignment = self._require(assignment_id)
        changes: dict[str, Any] = {}
        if data.get("priority") is not None:
            changes["priority"] = self._priority(data["priority"])
        if "is_primary" in data:
            changes["is_primary"] = bool(data["is_primary"])
        if data.get("status") is not None:
            changes["status"] = require_enum(data["status"], RecordStatus, "status")
        if "notes" in data:
            changes["notes"] = data["notes"]
        if not changes:
            raise ValidationError("Nothing to update")

        updated = replace(assignment, **changes, updated_by=user_id, updated_at=now_local())
        self._assignments.update(updated)
        if updated.is_primary and not assignment.is_primary:
            self._demote_other_primaries(updated, user_id)

        diff = diff_fields({k: getattr(assignment, k) for k in changes}, changes)
        if diff:
            self._area_service.record(
                assignment.area_id,
                AreaAction.ASSIGNMENT_CHANGE,
                changes=diff,
                reason=f"branch {assignment.branch_id}",
                user_id=user_id,
            )
        return updated

    def remove_assignment(self, assignment_id: int, *, user_id: str) -> None:
        assignment = self._require(assignment_id)
        if not self._assignments.delete(assignment.assignment_id):
            raise ValidationError("Failed to remove assignment")
        self._area_service.record(
            assignment.area_id,
            AreaAction.ASSIGNMENT_CHANGE,
            changes=[{"field": "branch_id", "old": assignment.branch_id, "new": None}],
            user_id=user_id,
        )
        logger.info("Branch %s removed from service area %s", assignment.branch_id, assignment.area_id)

    def list_by_branch(self, branch_id: int) -> List[BranchServiceArea]:
        if not self._branches.get_by_id(int(branch_id)):
            raise NotFoundError("Branch not found")
        return list(self._assignments.list(branch_id=int(branch_id)))

    def list_by_area(self, area_id: int) -> List[BranchServiceArea]:
        if not self._areas.get_by_id(int(area_id)):
            raise NotFoundError("Service area not found")
        return list(self._assignments.list(area_id=int(area_id)))

    def branch_for_area(self, area_id: int) -> BranchServiceArea:
        """Lowest priority number wins; a primary assignment breaks ties."""
        candidates = [a for a in self.list_by_area(area_id) if a.status == RecordStatus.ACTIVE]
        if not candidates:
            raise NotFoundError("No active branch serves this service area")
        return min(candidates, key=lambda a: (a.priority, not a.is_primary, a.assignment_id))

    def branch_for_point(self, longitude: Any, latitude: Any) -> dict:
        for area in self._area_service.find_by_point(longitude, latitude):
            try:
                assignment = self.branch_for_area(area.area_id)
            except NotFoundError:
                continue
            return {"area": area, "assignment": assignment}
        raise NotFoundError("No branch serves this location")
