from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import DivisionStatus
from .model import Division


class DivisionRepository(Protocol):
    def get_by_id(self, division_id: int) -> Optional[Division]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[Division]:
        raise NotImplementedError

    def list(
        self,
        *,
        branch_id: Optional[int] = None,
        parent_id: Optional[int] = None,
        status: Optional[DivisionStatus] = None,
        search: Optional[str] = None,
    ) -> Sequence[Division]:
        raise NotImplementedError

    def list_children(self, parent_id: int) -> Sequence[Division]:
        raise NotImplementedError

    def list_descendants(self, path: str) -> Sequence[Division]:
        raise NotImplementedError

    def create(self, division: Division) -> int:
        raise NotImplementedError

    def update(self, division: Division) -> bool:
        raise NotImplementedError

    def delete(self, division_id: int) -> bool:
        raise NotImplementedError
