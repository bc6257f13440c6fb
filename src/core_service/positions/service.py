from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, List, Optional

from ..common.datetime_utils import now_local
from ..common.hierarchy import build_tree, compute_level, would_create_cycle
from ..common.pagination import Page, paginate
from ..common.serialization import diff_fields
from ..common.validators import require_dict, require_enum, require_fields, require_non_empty, require_non_negative
from ..core.constants import DEFAULT_CURRENCY
from ..core.enums import ChangeType, EntityType, PositionStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..divisions.repository import DivisionRepository
from ..employees.repository import EmployeeRepository
from ..org_changes.service import OrgChangeService
from .model import Position
from .repository import PositionRepository

logger = logging.getLogger(__name__)

_EDITABLE = ("title", "description", "is_head", "requirements", "responsibilities")


class PositionService:
    def __init__(
        self,
        positions: PositionRepository,
        divisions: DivisionRepository,
        employees: EmployeeRepository,
        org_changes: OrgChangeService,
    ):
        self._positions = positions
        self._divisions = divisions
        self._employees = employees
        self._org_changes = org_changes

    def _require(self, position_id: int) -> Position:
        position = self._positions.get_by_id(int(position_id))
        if not position:
            raise NotFoundError(f"Position with ID {position_id} not found")
        return position

    def _require_division(self, division_id: Any) -> int:
        if division_id is None or not self._divisions.get_by_id(int(division_id)):
            raise NotFoundError(f"Division with ID {division_id} not found")
        return int(division_id)

    def _parent_of(self, position_id: int) -> Optional[int]:
        p = self._positions.get_by_id(position_id)
        return p.report_to_id if p else None

    def _record(self, position: Position, change_type: ChangeType, *, changes=None, reason=None, user_id=None) -> None:
        self._org_changes.record_change(
            entity_type=EntityType.POSITION,
            entity_id=position.position_id,
            change_type=change_type,
            changes=changes,
            reason=reason,
            changed_by=user_id,
        )

    @staticmethod
    def _validated_salary(salary: Any, current: dict) -> dict:
        salary = require_dict(salary, "Salary range")
        merged = {"currency": DEFAULT_CURRENCY, **current}
        if "min" in salary:
            merged["min"] = require_non_negative(salary["min"], "Minimum salary")
        if "max" in salary:
            merged["max"] = require_non_negative(salary["max"], "Maximum salary")
        if "currency" in salary:
            merged["currency"] = require_non_empty(salary["currency"], "Currency").upper()
        if merged.get("min") is not None and merged.get("max") is not None and merged["min"] > merged["max"]:
            raise ValidationError("Minimum salary cannot be greater than maximum salary")
        return merged

    def create_position(self, data: dict, *, user_id: str) -> Position:
        require_fields(data, ("code", "title", "division_id"))
        code = require_non_empty(data["code"], "Position code").upper()
        if self._positions.get_by_code(code):
            raise ValidationError(f"Position with code {code} already exists")

        division_id = self._require_division(data["division_id"])

        report_to_id = data.get("report_to_id")
        level = 1
        if report_to_id is not None:
            report_to = self._positions.get_by_id(int(report_to_id))
            if not report_to:
                raise NotFoundError(f"Reporting position with ID {report_to_id} not found")
            level = compute_level(report_to.level)
            report_to_id = report_to.position_id

        position = Position(
            position_id=0,
            code=code,
            title=require_non_empty(data["title"], "Position title"),
            division_id=division_id,
            report_to_id=report_to_id,
            level=level,
            is_head=bool(data.get("is_head", False)),
            status=require_enum(data.get("status", PositionStatus.ACTIVE), PositionStatus, "status"),
            description=data.get("description"),
            salary_range=self._validated_salary(data.get("salary_range") or {}, {}),
            requirements=list(data.get("requirements") or []),
            responsibilities=list(data.get("responsibilities") or []),
            created_by=user_id,
            updated_by=user_id,
            created_at=now_local(),
            updated_at=now_local(),
        )
        position = replace(position, position_id=self._positions.create(position))
        self._record(position, ChangeType.CREATE, changes=[{"field": "code", "old": None, "new": code}], user_id=user_id)
        logger.info("Position %s created (id=%s)", code, position.position_id)
        return position

    def get_position(self, position_id: int) -> Position:
        return self._require(position_id)

    def list_positions(
        self,
        *,
        division_id: Optional[int] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[Position]:
        rows = self._positions.list(
            division_id=division_id,
            status=require_enum(status, PositionStatus, "status") if status else None,
            search=search.strip() if search else None,
        )
        return paginate(list(rows), page, limit)

    def get_by_division(self, division_id: int) -> List[Position]:
        self._require_division(division_id)
        return list(self._positions.list(division_id=int(division_id)))

    def update_position(self, position_id: int, data: dict, *, user_id: str) -> Position:
        position = self._require(position_id)
        changes: dict[str, Any] = {}

        if data.get("code") is not None:
            code = require_non_empty(data["code"], "Position code").upper()
            other = self._positions.get_by_code(code)
            if other and other.position_id != position.position_id:
                raise ValidationError(f"Position with code {code} already exists")
            changes["code"] = code

        if data.get("division_id") is not None:
            changes["division_id"] = self._require_division(data["division_id"])

        if "report_to_id" in data:
            report_to_id = int(data["report_to_id"]) if data["report_to_id"] is not None else None
            level = 1
            if report_to_id is not None:
                if report_to_id == position.position_id:
                    raise ValidationError("Position cannot report to itself")
                report_to = self._positions.get_by_id(report_to_id)
                if not report_to:
                    raise NotFoundError(f"Reporting position with ID {report_to_id} not found")
                if would_create_cycle(position.position_id, report_to_id, self._parent_of):
                    raise ValidationError("Circular reporting relationship detected")
                level = compute_level(report_to.level)
            changes["report_to_id"] = report_to_id
            changes["level"] = level

        for key in _EDITABLE:
            if key in data:
                changes[key] = data[key]
        if "title" in changes:
            changes["title"] = require_non_empty(changes["title"], "Position title")
        if "salary_range" in data:
            changes["salary_range"] = self._validated_salary(data["salary_range"], position.salary_range)

        before = {k: getattr(position, k) for k in changes}
        updated = replace(position, **changes, updated_by=user_id, updated_at=now_local())
        self._positions.update(updated)

        if updated.level != position.level:
            self._refresh_levels(updated)

        diff = diff_fields(before, changes)
        if diff:
            change_type = ChangeType.RESTRUCTURE if "report_to_id" in changes else ChangeType.UPDATE
            self._record(updated, change_type, changes=diff, reason=data.get("reason"), user_id=user_id)
        return updated

    def _refresh_levels(self, root: Position) -> None:
        pending = [root]
        while pending:
            current = pending.pop()
            for report in self._positions.list(report_to_id=current.position_id):
                moved = replace(report, level=current.level + 1)
                self._positions.update(moved)
                pending.append(moved)

    def get_reporting_chain(self, position_id: int) -> List[Position]:
        """The position followed by each manager up to the top."""
        position = self._require(position_id)
        chain = [position]
        seen = {position.position_id}
        current = position
        while current.report_to_id is not None and current.report_to_id not in seen:
            manager = self._positions.get_by_id(current.report_to_id)
            if not manager:
                break
            chain.append(manager)
            seen.add(manager.position_id)
            current = manager
        return chain

    def get_org_chart(self, division_id: Optional[int] = None) -> list[dict]:
        nodes = self._positions.list(division_id=division_id)
        return build_tree(
            nodes,
            id_of=lambda p: p.position_id,
            parent_of=lambda p: p.report_to_id,
            to_dict=lambda p: {
                "position_id": p.position_id,
                "code": p.code,
                "title": p.title,
                "level": p.level,
                "is_head": p.is_head,
                "status": p.status.value,
                "division_id": p.division_id,
            },
            children_key="direct_reports",
        )

    def change_status(self, position_id: int, *, status: Any, reason: Optional[str] = None, user_id: str) -> Position:
        position = self._require(position_id)
        new_status = require_enum(status, PositionStatus, "status")
        updated = replace(position, status=new_status, updated_by=user_id, updated_at=now_local())
        self._positions.update(updated)

        change_type = ChangeType.DEACTIVATE if new_status == PositionStatus.INACTIVE else ChangeType.ACTIVATE
        self._record(
            updated,
            change_type,
            changes=[{"field": "status", "old": position.status.value, "new": new_status.value}],
            reason=reason,
            user_id=user_id,
        )
        return updated

    def update_salary_range(self, position_id: int, salary: Any, *, user_id: str) -> Position:
        position = self._require(position_id)
        merged = self._validated_salary(salary, position.salary_range)
        updated = replace(position, salary_range=merged, updated_by=user_id, updated_at=now_local())
        self._positions.update(updated)
        return updated

    def delete_position(self, position_id: int, *, user_id: str) -> None:
        position = self._require(position_id)
        reports = self._positions.list(report_to_id=position.position_id)
        if reports:
            raise ValidationError(
                f"Cannot delete position with ID {position_id} because {len(reports)} positions report to it"
            )
        holders = self._employees.list(position_id=position.position_id)
        if holders:
            raise ValidationError(
                f"Cannot delete position with ID {position_id} because it is assigned to {len(holders)} employees"
            )

        if not self._positions.delete(position.position_id):
            raise ValidationError("Failed to delete position")
        self._record(position, ChangeType.DELETE, changes=[{"field": "code", "old": position.code, "new": None}], user_id=user_id)
        logger.info("Position %s deleted by %s", position.code, user_id)
