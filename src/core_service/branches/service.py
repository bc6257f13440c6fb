from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, List, Optional

from ..common.datetime_utils import now_local, parse_optional_date
from ..common.hierarchy import build_tree, compute_level, compute_path, would_create_cycle
from ..common.pagination import Page, paginate
from ..common.validators import (
    optional_int,
    require_dict,
    require_enum,
    require_fields,
    require_hhmm,
    require_max_length,
    require_non_empty,
    require_non_negative,
    require_range,
)
from ..core.constants import MAX_BRANCH_CODE_LENGTH, MAX_HIERARCHY_LEVEL
from ..core.enums import BranchStatus, BranchType, DocumentType, Weekday
from ..core.exceptions import NotFoundError, ValidationError
from .model import Branch
from .repository import BranchRepository

logger = logging.getLogger(__name__)

_REASON_REQUIRED = {BranchStatus.INACTIVE, BranchStatus.CLOSED}
_METRIC_RANGES = {
    "customer_satisfaction_score": (0, 5),
    "delivery_success_rate": (0, 100),
}
_RESOURCE_FIELDS = ("employee_count", "vehicle_count", "storage_capacity")
_EDITABLE = ("name", "type", "address", "contact", "coordinates")


class BranchService:
    def __init__(self, branches: BranchRepository):
        self._branches = branches

    def _require(self, branch_id: int) -> Branch:
        branch = self._branches.get_by_id(int(branch_id))
        if not branch:
            raise NotFoundError("Branch not found")
        return branch

    @staticmethod
    def _normalize_code(value: Any) -> str:
        code = require_non_empty(value, "Branch code").upper()
        return require_max_length(code, "Branch code", MAX_BRANCH_CODE_LENGTH)

    def _placement(self, code: str, parent_id: Optional[int]) -> tuple[int, str]:
        if parent_id is None:
            return 1, code
        parent = self._branches.get_by_id(int(parent_id))
        if not parent:
            raise ValidationError("Parent branch not found")
        level = compute_level(parent.level)
        if level > MAX_HIERARCHY_LEVEL:
            raise ValidationError(f"Branch hierarchy cannot be deeper than {MAX_HIERARCHY_LEVEL} levels")
        return level, compute_path(parent.path, code)

    def create_branch(self, data: dict, *, user_id: str) -> Branch:
        require_fields(data, ("code", "name", "type"))
        code = self._normalize_code(data["code"])
        branch_type = require_enum(data["type"], BranchType, "branch type")

        if self._branches.get_by_code(code):
            raise ValidationError(f"Branch code {code} already exists")

        parent_id = optional_int(data.get("parent_id"), "parent_id")
        level, path = self._placement(code, parent_id)

        branch = Branch(
            branch_id=0,
            code=code,
            name=require_non_empty(data["name"], "Branch name"),
            type=branch_type,
            parent_id=parent_id,
            level=level,
            path=path,
            status=BranchStatus.ACTIVE,
            address=data.get("address") or {},
            contact=data.get("contact") or {},
            coordinates=data.get("coordinates"),
            operational_hours=self._validate_hours(data["operational_hours"]) if data.get("operational_hours") else [],
            created_by=user_id,
            updated_by=user_id,
            created_at=now_local(),
            updated_at=now_local(),
        )
        branch_id = self._branches.create(branch)
        logger.info("Branch %s created (id=%s) by %s", code, branch_id, user_id)
        return replace(branch, branch_id=branch_id)

    def get_branch(self, branch_id: int) -> Branch:
        return self._require(branch_id)

    def list_branches(
        self,
        *,
        type: Optional[str] = None,
        status: Optional[str] = None,
        parent_id: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[Branch]:
        rows = self._branches.list(
            type=require_enum(type, BranchType, "branch type") if type else None,
            status=require_enum(status, BranchStatus, "status") if status else None,
            parent_id=parent_id,
            search=search.strip() if search else None,
        )
        return paginate(list(rows), page, limit)

    def search_branches(self, query: str) -> List[Branch]:
        q = require_non_empty(query, "Search query")
        return list(self._branches.list(search=q))

    def get_hierarchy(self, root_id: Optional[int] = None) -> list[dict]:
        if root_id is not None:
            root = self._require(root_id)
            nodes = [root, *self._branches.list_descendants(root.path)]
        else:
            nodes = list(self._branches.list())
        return build_tree(
            nodes,
            id_of=lambda b: b.branch_id,
            parent_of=lambda b: b.parent_id,
            to_dict=lambda b: {
                "branch_id": b.branch_id,
                "code": b.code,
                "name": b.name,
                "type": b.type.value,
                "level": b.level,
                "status": b.status.value,
            },
            root_id=root_id,
        )

    def update_branch(self, branch_id: int, data: dict, *, user_id: str) -> Branch:
        branch = self._require(branch_id)
        changes: dict[str, Any] = {}

        code = branch.code
        if data.get("code") is not None:
            code = self._normalize_code(data["code"])
            if code != branch.code:
                other = self._branches.get_by_code(code)
                if other and other.branch_id != branch.branch_id:
                    raise ValidationError(f"Branch code {code} already exists")
            changes["code"] = code

        parent_id = branch.parent_id
        if "parent_id" in data:
            parent_id = optional_int(data["parent_id"], "parent_id")
            if parent_id == branch.branch_id:
                raise ValidationError("Branch cannot be its own parent")
            if parent_id is not None:
                if not self._branches.get_by_id(parent_id):
                    raise ValidationError("Parent branch not found")
                if would_create_cycle(branch.branch_id, parent_id, self._parent_of):
                    raise ValidationError("Circular reference detected in branch hierarchy")
            changes["parent_id"] = parent_id

        for key in _EDITABLE:
            if key in data:
                changes[key] = data[key]
        if "type" in changes:
            changes["type"] = require_enum(changes["type"], BranchType, "branch type")
        if "name" in changes:
            changes["name"] = require_non_empty(changes["name"], "Branch name")

        old_path = branch.path
        if "code" in changes or "parent_id" in changes:
            level, path = self._placement(code, parent_id)
            self._check_subtree_depth(branch, level)
            changes["level"] = level
            changes["path"] = path

        updated = replace(branch, **changes, updated_by=user_id, updated_at=now_local())
        self._branches.update(updated)

        if updated.path != old_path:
            self._refresh_descendants(old_path, updated)

        logger.info("Branch %s updated by %s", updated.code, user_id)
        return updated

    def _parent_of(self, branch_id: int) -> Optional[int]:
        b = self._branches.get_by_id(branch_id)
        return b.parent_id if b else None

    def _check_subtree_depth(self, branch: Branch, new_level: int) -> None:
        descendants = self._branches.list_descendants(branch.path)
        if not descendants:
            return
        deepest = max(d.level for d in descendants)
        if new_level + (deepest - branch.level) > MAX_HIERARCHY_LEVEL:
            raise ValidationError(f"Branch hierarchy cannot be deeper than {MAX_HIERARCHY_LEVEL} levels")

    def _refresh_descendants(self, old_path: str, root: Branch) -> None:
        for child in self._branches.list_descendants(old_path):
            suffix = child.path[len(old_path) + 1 :]
            path = f"{root.path}.{suffix}"
            level = root.level + suffix.count(".") + 1
            self._branches.update(replace(child, path=path, level=level))

    def update_status(self, branch_id: int, *, status: Any, reason: Optional[str], user_id: str) -> Branch:
        branch = self._require(branch_id)
        new_status = require_enum(status, BranchStatus, "status")
        reason = (reason or "").strip() or None
        if new_status in _REASON_REQUIRED and not reason:
            raise ValidationError(f"Status reason is required for {new_status.value} status")

        entry = {
            "from": branch.status.value,
            "to": new_status.value,
            "reason": reason,
            "changed_by": user_id,
            "changed_at": now_local().isoformat(),
        }
        updated = replace(
            branch,
            status=new_status,
            status_reason=reason,
            status_history=[*branch.status_history, entry],
            updated_by=user_id,
            updated_at=now_local(),
        )
        self._branches.update(updated)
        logger.info("Branch %s status %s -> %s", branch.code, branch.status.value, new_status.value)
        return updated

    def update_metrics(self, branch_id: int, metrics: Any, *, user_id: str) -> Branch:
        branch = self._require(branch_id)
        metrics = require_dict(metrics, "Metrics")
        merged = dict(branch.metrics)
        for key, value in metrics.items():
            if key in _METRIC_RANGES:
                low, high = _METRIC_RANGES[key]
                merged[key] = require_range(value, key, low, high)
            else:
                merged[key] = value
        updated = replace(branch, metrics=merged, updated_by=user_id, updated_at=now_local())
        self._branches.update(updated)
        return updated

    def update_resources(self, branch_id: int, resources: Any, *, user_id: str) -> Branch:
        branch = self._require(branch_id)
        resources = require_dict(resources, "Resources")
        merged = dict(branch.resources)
        for key, value in resources.items():
            if key not in _RESOURCE_FIELDS:
                raise ValidationError(f"Unknown resource field: {key}")
            merged[key] = require_non_negative(value, key)
        updated = replace(branch, resources=merged, updated_by=user_id, updated_at=now_local())
        self._branches.update(updated)
        return updated

    def add_document(self, branch_id: int, document: Any, *, user_id: str) -> Branch:
        branch = self._require(branch_id)
        document = require_dict(document, "Document")
        require_fields(document, ("name", "type", "file_url"))
        expiry = parse_optional_date(document.get("expiry_date"), "expiry_date")
        doc = {
            "document_id": uuid.uuid4().hex,
            "name": require_non_empty(document["name"], "Document name"),
            "type": require_enum(document["type"], DocumentType, "document type").value,
            "file_url": document["file_url"],
            "expiry_date": expiry.isoformat() if expiry else None,
            "uploaded_by": user_id,
            "uploaded_at": now_local().isoformat(),
        }
        updated = replace(branch, documents=[*branch.documents, doc], updated_by=user_id, updated_at=now_local())
        self._branches.update(updated)
        return updated

    def remove_document(self, branch_id: int, document_id: str, *, user_id: str) -> Branch:
        branch = self._require(branch_id)
        remaining = [d for d in branch.documents if d.get("document_id") != document_id]
        if len(remaining) == len(branch.documents):
            raise NotFoundError("Document not found")
        updated = replace(branch, documents=remaining, updated_by=user_id, updated_at=now_local())
        self._branches.update(updated)
        return updated

    @staticmethod
    def _validate_hours(hours: Any) -> list[dict]:
        if not isinstance(hours, list):
            raise ValidationError("Operational hours must be a list")

        seen: set[str] = set()
        out: list[dict] = []
        for item in hours:
            item = require_dict(item, "Operational hours entry")
            day = require_enum(item.get("day"), Weekday, "day").value
            if day in seen:
                raise ValidationError(f"Duplicate operational hours for {day}")
            seen.add(day)

            is_open = bool(item.get("is_open", True))
            entry = {"day": day, "is_open": is_open, "open_time": None, "close_time": None}
            if is_open:
                open_time = require_hhmm(item.get("open_time"), "open_time")
                close_time = require_hhmm(item.get("close_time"), "close_time")
                # HH:MM strings compare correctly
                if open_time >= close_time:
                    raise ValidationError(f"Opening time must be before closing time on {day}")
                entry["open_time"] = open_time
                entry["close_time"] = close_time
            out.append(entry)
        return out

    def update_operational_hours(self, branch_id: int, hours: Any, *, user_id: str) -> Branch:
        branch = self._require(branch_id)
        updated = replace(
            branch,
            operational_hours=self._validate_hours(hours),
            updated_by=user_id,
            updated_at=now_local(),
        )
        self._branches.update(updated)
        return updated

    def delete_branch(self, branch_id: int, *, user_id: str) -> None:
        branch = self._require(branch_id)
        if self._branches.list_children(branch.branch_id):
            raise ValidationError("Cannot delete branch with child branches")
        if not self._branches.delete(branch.branch_id):
            raise ValidationError("Failed to delete branch")
        logger.info("Branch %s deleted by %s", branch.code, user_id)
