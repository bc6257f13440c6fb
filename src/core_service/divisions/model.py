from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import DivisionStatus


@dataclass(frozen=True)
class Division:
    """Domain entity: an organizational unit inside a branch."""

    division_id: int
    code: str
    name: str
    branch_id: Optional[int] = None
    parent_id: Optional[int] = None
    path: str = ""
    level: int = 1
    description: Optional[str] = None
    head_position_id: Optional[int] = None
    status: DivisionStatus = DivisionStatus.ACTIVE
    status_reason: Optional[str] = None
    budget: dict = field(default_factory=dict)
    metrics: dict = field(default_factory=dict)
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
