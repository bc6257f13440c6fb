from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import minutes_between
from ...core.enums import AttendanceStatus
from ..model import WorkWindow
from .base import AttendanceStrategy, StatusDecision


class EarlyDepartureStrategy(AttendanceStrategy):
    """Check-out before the scheduled end."""

    def decide_checkin(self, *, now: datetime, window: WorkWindow) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)

    def decide_checkout(self, *, now: datetime, window: WorkWindow, current: AttendanceStatus) -> StatusDecision:
        return StatusDecision(
            status=current,
            is_early_departure=True,
            early_departure_minutes=minutes_between(now, window.end),
        )
