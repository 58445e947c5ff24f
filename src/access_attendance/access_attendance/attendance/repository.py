from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_occurrence(self, *, learner_id: int, schedule_id: int, occurrence_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def insert_absent_missing(self, *, schedule_id: int, occurrence_date: date, learner_ids: Sequence[int]) -> int:
        """Create ABSENT placeholders for learners without a record.

        Existing rows are left untouched. Returns how many rows were created.
        """

        raise NotImplementedError

    def update_if_version(
        self,
        *,
        attendance_id: int,
        expected_version: int,
        status: AttendanceStatus,
        marked_at: Optional[datetime],
        is_manual: bool,
        marked_by: Optional[int],
        notes: Optional[str],
        excuse_reason: Optional[str],
    ) -> bool:
        """Optimistic write: applies only if the stored version still matches.

        A successful write bumps the version by one.
        """

        raise NotImplementedError

    def list_for_occurrence(self, *, schedule_id: int, occurrence_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
