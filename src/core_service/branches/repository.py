from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import BranchStatus, BranchType
from .model import Branch


class BranchRepository(Protocol):
    def get_by_id(self, branch_id: int) -> Optional[Branch]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[Branch]:
        raise NotImplementedError

    def list(
        self,
        *,
        type: Optional[BranchType] = None,
        status: Optional[BranchStatus] = None,
        parent_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Sequence[Branch]:
        raise NotImplementedError

    def list_children(self, parent_id: int) -> Sequence[Branch]:
        raise NotImplementedError

    def list_descendants(self, path: str) -> Sequence[Branch]:
        """Branches whose path starts with ``path + '.'``."""

        raise NotImplementedError

    def create(self, branch: Branch) -> int:
        raise NotImplementedError

    def update(self, branch: Branch) -> bool:
        raise NotImplementedError

    def delete(self, branch_id: int) -> bool:
        raise NotImplementedError
