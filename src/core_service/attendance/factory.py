from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from .model import WorkWindow
from .strategies.base import AttendanceStrategy
from .strategies.early_strategy import EarlyDepartureStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_checkin(self, *, now: datetime, window: WorkWindow) -> AttendanceStrategy:
        if now > window.start + timedelta(minutes=window.grace_minutes):
            return LateStrategy()
        return NormalStrategy()

    def for_checkout(self, *, now: datetime, window: WorkWindow) -> AttendanceStrategy:
        if now < window.end:
            return EarlyDepartureStrategy()
        return NormalStrategy()
