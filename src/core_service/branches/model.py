from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import BranchStatus, BranchType


@dataclass(frozen=True)
class Branch:
    """Domain entity: a branch office in the company tree."""

    branch_id: int
    code: str
    name: str
    type: BranchType
    parent_id: Optional[int] = None
    level: int = 1
    path: str = ""
    status: BranchStatus = BranchStatus.ACTIVE
    status_reason: Optional[str] = None
    address: dict = field(default_factory=dict)
    contact: dict = field(default_factory=dict)
    coordinates: Optional[dict] = None
    operational_hours: list = field(default_factory=list)
    status_history: list = field(default_factory=list)
    metrics: dict = field(default_factory=dict)
    resources: dict = field(default_factory=dict)
    documents: list = field(default_factory=list)
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
