from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import minutes_between
from ...core.enums import AttendanceStatus
from ..model import WorkWindow
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Check-in after the grace period. Lateness counts from the scheduled start."""

    def decide_checkin(self, *, now: datetime, window: WorkWindow) -> StatusDecision:
        return StatusDecision(
            status=AttendanceStatus.PRESENT,
            is_late=True,
            late_minutes=minutes_between(window.start, now),
        )

    def decide_checkout(self, *, now: datetime, window: WorkWindow, current: AttendanceStatus) -> StatusDecision:
        return StatusDecision(status=current)
