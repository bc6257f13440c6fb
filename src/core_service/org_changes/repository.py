from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import ChangeType, EntityType
from .model import OrganizationalChange


class OrgChangeRepository(Protocol):
    def create(self, change: OrganizationalChange) -> int:
        raise NotImplementedError

    def get_by_id(self, change_id: int) -> Optional[OrganizationalChange]:
        raise NotImplementedError

    def list(
        self,
        *,
        entity_type: Optional[EntityType] = None,
        entity_id: Optional[int] = None,
        change_type: Optional[ChangeType] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Sequence[OrganizationalChange]:
        """Newest first."""

        raise NotImplementedError
