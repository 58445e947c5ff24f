from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..schedules.model import ScheduleOccurrence
from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy
from .strategies.outside_window_strategy import OutsideWindowStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose the strategy for an entry against one occurrence.

    Both boundaries are inclusive: ``class_start`` is on time and
    ``tolerance_end`` is still late.
    """

    def for_entry(self, *, entry_time: datetime, occurrence: ScheduleOccurrence) -> AttendanceStrategy:
        if entry_time <= occurrence.class_start:
            return OnTimeStrategy()
        if entry_time <= occurrence.tolerance_end:
            return LateStrategy()
        return OutsideWindowStrategy()
