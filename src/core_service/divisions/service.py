from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, List, Optional

from ..branches.repository import BranchRepository
from ..common.datetime_utils import now_local
from ..common.hierarchy import build_tree, compute_level, compute_path, would_create_cycle
from ..common.pagination import Page, paginate
from ..common.serialization import diff_fields
from ..common.validators import (
    optional_int,
    require_dict,
    require_enum,
    require_fields,
    require_non_empty,
    require_non_negative,
)
from ..core.constants import MAX_HIERARCHY_LEVEL
from ..core.enums import ChangeType, DivisionStatus, EntityType
from ..core.exceptions import NotFoundError, ValidationError
from ..org_changes.service import OrgChangeService
from ..positions.repository import PositionRepository
from .model import Division
from .repository import DivisionRepository

logger = logging.getLogger(__name__)

_EDITABLE = ("name", "description", "head_position_id")
_DEACTIVATED = {DivisionStatus.INACTIVE, DivisionStatus.ARCHIVED}


class DivisionService:
    def __init__(
        self,
        divisions: DivisionRepository,
        branches: BranchRepository,
        positions: PositionRepository,
        org_changes: OrgChangeService,
    ):
        self._divisions = divisions
        self._branches = branches
        self._positions = positions
        self._org_changes = org_changes

    def _require(self, division_id: int) -> Division:
        division = self._divisions.get_by_id(int(division_id))
        if not division:
            raise NotFoundError(f"Division with ID {division_id} not found")
        return division

    def _require_branch(self, branch_id: Any) -> int:
        if branch_id is None:
            raise ValidationError("Branch is required")
        if not self._branches.get_by_id(int(branch_id)):
            raise NotFoundError(f"Branch with ID {branch_id} not found")
        return int(branch_id)

    def _placement(self, code: str, parent_id: Optional[int]) -> tuple[int, str]:
        if parent_id is None:
            return 1, code
        parent = self._divisions.get_by_id(parent_id)
        if not parent:
            raise NotFoundError(f"Parent division with ID {parent_id} not found")
        level = compute_level(parent.level)
        if level > MAX_HIERARCHY_LEVEL:
            raise ValidationError(f"Division hierarchy cannot be deeper than {MAX_HIERARCHY_LEVEL} levels")
        return level, compute_path(parent.path, code)

    def _parent_of(self, division_id: int) -> Optional[int]:
        d = self._divisions.get_by_id(division_id)
        return d.parent_id if d else None

    def _check_subtree_depth(self, division: Division, new_level: int) -> None:
        descendants = self._divisions.list_descendants(division.path)
        if not descendants:
            return
        deepest = max(d.level for d in descendants)
        if new_level + (deepest - division.level) > MAX_HIERARCHY_LEVEL:
            raise ValidationError(f"Division hierarchy cannot be deeper than {MAX_HIERARCHY_LEVEL} levels")

    def _record(self, division: Division, change_type: ChangeType, *, changes=None, reason=None, user_id=None) -> None:
        self._org_changes.record_change(
            entity_type=EntityType.DIVISION,
            entity_id=division.division_id,
            change_type=change_type,
            changes=changes,
            reason=reason,
            changed_by=user_id,
        )

    def create_division(self, data: dict, *, user_id: str) -> Division:
        require_fields(data, ("code", "name", "branch_id"))
        code = require_non_empty(data["code"], "Division code").upper()
        if self._divisions.get_by_code(code):
            raise ValidationError(f"Division with code {code} already exists")

        branch_id = self._require_branch(data["branch_id"])
        parent_id = optional_int(data.get("parent_id"), "parent_id")
        level, path = self._placement(code, parent_id)

        division = Division(
            division_id=0,
            code=code,
            name=require_non_empty(data["name"], "Division name"),
            branch_id=branch_id,
            parent_id=parent_id,
            path=path,
            level=level,
            description=data.get("description"),
            head_position_id=data.get("head_position_id"),
            status=require_enum(data.get("status", DivisionStatus.ACTIVE), DivisionStatus, "status"),
            budget=self._validated_budget(data.get("budget") or {}, {}),
            metrics=require_dict(data.get("metrics") or {}, "Metrics"),
            created_by=user_id,
            updated_by=user_id,
            created_at=now_local(),
            updated_at=now_local(),
        )
        division = replace(division, division_id=self._divisions.create(division))
        self._record(division, ChangeType.CREATE, changes=[{"field": "code", "old": None, "new": code}], user_id=user_id)
        logger.info("Division %s created (id=%s)", code, division.division_id)
        return division

    def get_division(self, division_id: int) -> Division:
        return self._require(division_id)

    def get_division_by_code(self, code: str) -> Division:
        division = self._divisions.get_by_code(require_non_empty(code, "Division code").upper())
        if not division:
            raise NotFoundError(f"Division with code {code} not found")
        return division

    def list_divisions(
        self,
        *,
        branch_id: Optional[int] = None,
        parent_id: Optional[int] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[Division]:
        rows = self._divisions.list(
            branch_id=branch_id,
            parent_id=parent_id,
            status=require_enum(status, DivisionStatus, "status") if status else None,
            search=search.strip() if search else None,
        )
        return paginate(list(rows), page, limit)

    def get_hierarchy(self, branch_id: Optional[int] = None) -> list[dict]:
        nodes = self._divisions.list(branch_id=branch_id)
        return build_tree(
            nodes,
            id_of=lambda d: d.division_id,
            parent_of=lambda d: d.parent_id,
            to_dict=lambda d: {
                "division_id": d.division_id,
                "code": d.code,
                "name": d.name,
                "level": d.level,
                "status": d.status.value,
                "branch_id": d.branch_id,
            },
        )

    def get_by_branch(self, branch_id: int) -> List[Division]:
        return list(self._divisions.list(branch_id=int(branch_id)))

    def get_children(self, division_id: int) -> List[Division]:
        division = self._require(division_id)
        return list(self._divisions.list_children(division.division_id))

    def get_descendants(self, division_id: int) -> List[Division]:
        division = self._require(division_id)
        return list(self._divisions.list_descendants(division.path))

    def update_division(self, division_id: int, data: dict, *, user_id: str) -> Division:
        division = self._require(division_id)
        changes: dict[str, Any] = {}

        code = division.code
        if data.get("code") is not None:
            code = require_non_empty(data["code"], "Division code").upper()
            if code != division.code:
                other = self._divisions.get_by_code(code)
                if other and other.division_id != division.division_id:
                    raise ValidationError(f"Division with code {code} already exists")
            changes["code"] = code

        parent_id = division.parent_id
        if "parent_id" in data:
            parent_id = optional_int(data["parent_id"], "parent_id")
            if parent_id == division.division_id:
                raise ValidationError("Division cannot be its own parent")
            if parent_id is not None:
                if not self._divisions.get_by_id(parent_id):
                    raise NotFoundError(f"Parent division with ID {parent_id} not found")
                if would_create_cycle(division.division_id, parent_id, self._parent_of):
                    raise ValidationError("Circular parent relationship detected")
            changes["parent_id"] = parent_id

        if data.get("branch_id") is not None:
            changes["branch_id"] = self._require_branch(data["branch_id"])

        for key in _EDITABLE:
            if key in data:
                changes[key] = data[key]
        if "name" in changes:
            changes["name"] = require_non_empty(changes["name"], "Division name")

        old_path = division.path
        if "code" in changes or "parent_id" in changes:
            level, path = self._placement(code, parent_id)
            self._check_subtree_depth(division, level)
            changes["level"] = level
            changes["path"] = path

        before = {k: getattr(division, k) for k in changes}
        updated = replace(division, **changes, updated_by=user_id, updated_at=now_local())
        self._divisions.update(updated)

        if updated.path != old_path:
            for child in self._divisions.list_descendants(old_path):
                suffix = child.path[len(old_path) + 1 :]
                self._divisions.update(
                    replace(child, path=f"{updated.path}.{suffix}", level=updated.level + suffix.count(".") + 1)
                )

        diff = diff_fields(before, changes)
        if diff:
            change_type = ChangeType.RESTRUCTURE if "parent_id" in changes else ChangeType.UPDATE
            self._record(updated, change_type, changes=diff, reason=data.get("reason"), user_id=user_id)
        return updated

    def change_status(self, division_id: int, *, status: Any, reason: Optional[str] = None, user_id: str) -> Division:
        division = self._require(division_id)
        new_status = require_enum(status, DivisionStatus, "status")

        if new_status in _DEACTIVATED:
            active_children = [
                c for c in self._divisions.list_children(division.division_id) if c.status == DivisionStatus.ACTIVE
            ]
            if active_children:
                raise ValidationError(
                    f"Cannot deactivate division with ID {division_id} because it has "
                    f"{len(active_children)} active child divisions"
                )

        updated = replace(
            division,
            status=new_status,
            status_reason=(reason or "").strip() or None,
            updated_by=user_id,
            updated_at=now_local(),
        )
        self._divisions.update(updated)

        change_type = ChangeType.ACTIVATE if new_status == DivisionStatus.ACTIVE else ChangeType.DEACTIVATE
        self._record(
            updated,
            change_type,
            changes=[{"field": "status", "old": division.status.value, "new": new_status.value}],
            reason=reason,
            user_id=user_id,
        )
        return updated

    @staticmethod
    def _validated_budget(budget: Any, current: dict) -> dict:
        budget = require_dict(budget, "Budget")
        merged = dict(current)
        if "annual_budget" in budget:
            merged["annual_budget"] = require_non_negative(budget["annual_budget"], "Annual budget")
        if "spent_budget" in budget:
            merged["spent_budget"] = require_non_negative(budget["spent_budget"], "Spent budget")
        if "fiscal_year" in budget:
            try:
                year = int(budget["fiscal_year"])
            except (TypeError, ValueError):
                year = 0
            if year < 2000 or year > 2100:
                raise ValidationError("Fiscal year must be a valid year between 2000 and 2100")
            merged["fiscal_year"] = year
        if "currency" in budget:
            merged["currency"] = require_non_empty(budget["currency"], "Currency").upper()
        return merged

    def update_budget(self, division_id: int, budget: Any, *, user_id: str) -> dict:
        division = self._require(division_id)
        merged = self._validated_budget(budget, division.budget)
        updated = replace(division, budget=merged, updated_by=user_id, updated_at=now_local())
        self._divisions.update(updated)

        annual = float(merged.get("annual_budget", 0))
        spent = float(merged.get("spent_budget", 0))
        return {"division_id": updated.division_id, "budget": merged, "remaining": annual - spent}

    def update_metrics(self, division_id: int, metrics: Any, *, user_id: str) -> Division:
        division = self._require(division_id)
        metrics = require_dict(metrics, "Metrics")
        updated = replace(division, metrics={**division.metrics, **metrics}, updated_by=user_id, updated_at=now_local())
        self._divisions.update(updated)
        return updated

    def transfer_to_branch(self, division_id: int, branch_id: Any, *, user_id: str, reason: Optional[str] = None) -> Division:
        division = self._require(division_id)
        new_branch_id = self._require_branch(branch_id)
        if new_branch_id == division.branch_id:
            raise ValidationError("Division already belongs to this branch")

        updated = replace(division, branch_id=new_branch_id, updated_by=user_id, updated_at=now_local())
        self._divisions.update(updated)
        self._record(
            updated,
            ChangeType.TRANSFER,
            changes=[{"field": "branch_id", "old": division.branch_id, "new": new_branch_id}],
            reason=reason,
            user_id=user_id,
        )
        logger.info("Division %s transferred to branch %s", division.code, new_branch_id)
        return updated

    def delete_division(self, division_id: int, *, user_id: str) -> None:
        division = self._require(division_id)
        children = self._divisions.list_children(division.division_id)
        if children:
            raise ValidationError(
                f"Cannot delete division with ID {division_id} because it has {len(children)} child divisions"
            )
        positions = self._positions.list(division_id=division.division_id)
        if positions:
            raise ValidationError(
                f"Cannot delete division with ID {division_id} because it has {len(positions)} positions"
            )

        if not self._divisions.delete(division.division_id):
            raise ValidationError("Failed to delete division")
        self._record(division, ChangeType.DELETE, changes=[{"field": "code", "old": division.code, "new": None}], user_id=user_id)
        logger.info("Division %s deleted by %s", division.code, user_id)
