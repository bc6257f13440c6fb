from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import HolidayType, RecordStatus
from .model import Holiday


class HolidayRepository(Protocol):
    def get_by_id(self, holiday_id: int) -> Optional[Holiday]:
        raise NotImplementedError

    def find(self, day: date, name: str) -> Optional[Holiday]:
        raise NotImplementedError

    def list(
        self,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        type: Optional[HolidayType] = None,
        status: Optional[RecordStatus] = None,
        is_recurring: Optional[bool] = None,
    ) -> Sequence[Holiday]:
        raise NotImplementedError

    def create(self, holiday: Holiday) -> int:
        raise NotImplementedError

    def update(self, holiday: Holiday) -> bool:
        raise NotImplementedError

    def delete(self, holiday_id: int) -> bool:
        raise NotImplementedError
