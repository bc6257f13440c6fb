from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import PositionStatus


@dataclass(frozen=True)
class Position:
    """Domain entity: a job position and its reporting line."""

    position_id: int
    code: str
    title: str
    division_id: int
    report_to_id: Optional[int] = None
    level: int = 1
    is_head: bool = False
    status: PositionStatus = PositionStatus.ACTIVE
    description: Optional[str] = None
    salary_range: dict = field(default_factory=dict)
    requirements: list = field(default_factory=list)
    responsibilities: list = field(default_factory=list)
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
