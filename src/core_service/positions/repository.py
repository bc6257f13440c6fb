from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import PositionStatus
from .model import Position


class PositionRepository(Protocol):
    def get_by_id(self, position_id: int) -> Optional[Position]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[Position]:
        raise NotImplementedError

    def list(
        self,
        *,
        division_id: Optional[int] = None,
        report_to_id: Optional[int] = None,
        status: Optional[PositionStatus] = None,
        search: Optional[str] = None,
    ) -> Sequence[Position]:
        raise NotImplementedError

    def create(self, position: Position) -> int:
        raise NotImplementedError

    def update(self, position: Position) -> bool:
        raise NotImplementedError

    def delete(self, position_id: int) -> bool:
        raise NotImplementedError
