from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from ...schedules.model import ScheduleOccurrence
from .base import AttendanceStrategy, StatusDecision


class OnTimeStrategy(AttendanceStrategy):
    """Arrived at or before class start."""

    def decide(self, *, entry_time: datetime, occurrence: ScheduleOccurrence) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
