from __future__ import annotations

from datetime import datetime

from ...schedules.model import ScheduleOccurrence
from .base import AttendanceStrategy, StatusDecision


class OutsideWindowStrategy(AttendanceStrategy):
    """Arrived after the tolerance window closed: leave the record alone."""

    def decide(self, *, entry_time: datetime, occurrence: ScheduleOccurrence) -> StatusDecision:
        return StatusDecision(status=None, note=f"after {occurrence.tolerance_end:%H:%M:%S}")
