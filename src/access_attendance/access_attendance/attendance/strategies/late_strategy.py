from __future__ import annotations

from datetime import datetime

from ...common.datetime_utils import round_minutes
from ...core.enums import AttendanceStatus
from ...schedules.model import ScheduleOccurrence
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Arrived after class start but within the late tolerance."""

    def decide(self, *, entry_time: datetime, occurrence: ScheduleOccurrence) -> StatusDecision:
        minutes = round_minutes(entry_time - occurrence.class_start)
        return StatusDecision(status=AttendanceStatus.LATE, note=f"{minutes} min late")
