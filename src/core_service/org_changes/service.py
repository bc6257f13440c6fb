from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, time
from typing import Any, List, Optional

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.validators import require_enum, require_non_empty
from ..core.constants import DEFAULT_RECENT_CHANGES
from ..core.enums import ChangeType, EntityType
from ..core.exceptions import NotFoundError, ValidationError
from .model import OrganizationalChange
from .repository import OrgChangeRepository

logger = logging.getLogger(__name__)


class OrgChangeService:
    """Audit trail for division and position changes."""

    def __init__(self, changes: OrgChangeRepository):
        self._changes = changes

    def record_change(
        self,
        *,
        entity_type: EntityType,
        entity_id: int,
        change_type: ChangeType,
        changes: Optional[list] = None,
        reason: Optional[str] = None,
        changed_by: Optional[str] = None,
    ) -> OrganizationalChange:
        entry = OrganizationalChange(
            change_id=0,
            entity_type=entity_type,
            entity_id=int(entity_id),
            change_type=change_type,
            changes=list(changes or []),
            reason=(reason or "").strip() or None,
            changed_by=changed_by,
            changed_at=now_local(),
        )
        change_id = self._changes.create(entry)
        logger.debug("Recorded %s on %s #%s", change_type.value, entity_type.value, entity_id)
        return replace(entry, change_id=change_id)

    def get_by_entity(self, entity_type: Any, entity_id: int) -> List[OrganizationalChange]:
        etype = require_enum(entity_type, EntityType, "entity type")
        return list(self._changes.list(entity_type=etype, entity_id=int(entity_id)))

    def get_by_type(self, change_type: Any) -> List[OrganizationalChange]:
        ctype = require_enum(change_type, ChangeType, "change type")
        return list(self._changes.list(change_type=ctype))

    def get_by_date_range(self, start: Any, end: Any) -> List[OrganizationalChange]:
        start_d: date = parse_iso_date(start, "start date")
        end_d: date = parse_iso_date(end, "end date")
        if start_d > end_d:
            raise ValidationError("Start date must be before or equal to end date")
        return list(
            self._changes.list(
                start=datetime.combine(start_d, time.min),
                end=datetime.combine(end_d, time.max),
            )
        )

    def get_recent(self, limit: Any = DEFAULT_RECENT_CHANGES) -> List[OrganizationalChange]:
        try:
            n = int(limit)
        except (TypeError, ValueError):
            raise ValidationError("Limit must be an integer")
        if n < 1 or n > 100:
            raise ValidationError("Limit must be between 1 and 100")
        return list(self._changes.list(limit=n))

    def get_change(self, change_id: int) -> OrganizationalChange:
        change = self._changes.get_by_id(int(change_id))
        if not change:
            raise NotFoundError("Organizational change not found")
        return change

    def search(self, query: Any) -> List[OrganizationalChange]:
        q = require_non_empty(query, "Search query")
        return list(self._changes.list(search=q))
