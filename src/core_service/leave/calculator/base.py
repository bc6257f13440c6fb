from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Collection


class LeaveDurationCalculator(ABC):
    """Calculator interface (Strategy Pattern for leave duration)."""

    @abstractmethod
    def duration(self, start: date, end: date, *, holidays: Collection[date], is_half_day: bool = False) -> float:
        raise NotImplementedError
