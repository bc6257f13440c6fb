from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import ChangeType, EntityType


@dataclass(frozen=True)
class OrganizationalChange:
    """Audit entry for a division or position change."""

    change_id: int
    entity_type: EntityType
    entity_id: int
    change_type: ChangeType
    changes: list = field(default_factory=list)
    reason: Optional[str] = None
    changed_by: Optional[str] = None
    changed_at: Optional[datetime] = None
