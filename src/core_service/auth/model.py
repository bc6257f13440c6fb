from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class CurrentUser:
    """Caller identity decoded from the bearer token."""

    id: str
    email: Optional[str]
    role: Role
