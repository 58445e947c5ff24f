from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from ..core.constants import DEFAULT_LATE_TOLERANCE_MINUTES
from ..core.enums import ScheduleKind, Weekday


@dataclass(frozen=True)
class RecurringSchedule:
    """Weekly slot: meets every ``day_of_week``."""

    schedule_id: int
    cohort_id: int
    instructor_id: int
    subject: str
    day_of_week: Weekday
    start_time: time
    end_time: time
    late_tolerance_minutes: int = DEFAULT_LATE_TOLERANCE_MINUTES
    classroom: Optional[str] = None
    is_active: bool = True
    kind: ScheduleKind = field(default=ScheduleKind.RECURRING, init=False)

    def occurs_on(self, on_date: date) -> bool:
        return on_date.weekday() == int(self.day_of_week)


@dataclass(frozen=True)
class DatedSchedule:
    """One-off session on ``session_date``."""

    schedule_id: int
    cohort_id: int
    instructor_id: int
    subject: str
    session_date: date
    start_time: time
    end_time: time
    late_tolerance_minutes: int = DEFAULT_LATE_TOLERANCE_MINUTES
    classroom: Optional[str] = None
    is_active: bool = True
    kind: ScheduleKind = field(default=ScheduleKind.DATED, init=False)

    def occurs_on(self, on_date: date) -> bool:
        return on_date == self.session_date


Schedule = Union[RecurringSchedule, DatedSchedule]


@dataclass(frozen=True)
class ScheduleOccurrence:
    """One concrete dated meeting of a schedule."""

    schedule: Schedule
    occurrence_date: date

    @property
    def schedule_id(self) -> int:
        return self.schedule.schedule_id

    @property
    def class_start(self) -> datetime:
        return datetime.combine(self.occurrence_date, self.schedule.start_time)

    @property
    def tolerance_end(self) -> datetime:
        return self.class_start + timedelta(minutes=int(self.schedule.late_tolerance_minutes))
