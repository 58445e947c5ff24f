from __future__ import annotations

from datetime import date, time
from typing import Optional, Protocol, Sequence

from ..core.enums import Weekday
from .model import Schedule


class ScheduleRepository(Protocol):
    def find_active_occurrences(self, *, cohort_id: int, on_date: date, day_of_week: int) -> Sequence[Schedule]:
        """Active schedules of a cohort meeting on ``on_date``.

        Dated schedules match on the exact date, recurring ones on ``day_of_week``.
        """

        raise NotImplementedError

    def get_by_id(self, schedule_id: int) -> Optional[Schedule]:
        raise NotImplementedError

    def create_recurring(
        self,
        *,
        cohort_id: int,
        instructor_id: int,
        subject: str,
        day_of_week: Weekday,
        start_time: time,
        end_time: time,
        late_tolerance_minutes: int,
        classroom: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def create_dated(
        self,
        *,
        cohort_id: int,
        instructor_id: int,
        subject: str,
        session_date: date,
        start_time: time,
        end_time: time,
        late_tolerance_minutes: int,
        classroom: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def set_active(self, *, schedule_id: int, is_active: bool) -> bool:
        raise NotImplementedError
