from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from ..core.enums import AttendanceStatus, NotificationType


@dataclass(frozen=True)
class NotificationPayload:
    """Attendance change announced to a schedule's instructor.

    Grouped (bulk) payloads carry several learners that ended in the same status.
    """

    notification_id: str
    type: NotificationType
    timestamp: datetime
    instructor_id: int
    schedule_id: int
    occurrence_date: date
    learner_ids: Tuple[int, ...]
    status: AttendanceStatus
    is_automatic: bool
    marked_by: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.notification_id,
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
            "instructorId": self.instructor_id,
            "scheduleId": self.schedule_id,
            "occurrenceDate": self.occurrence_date.isoformat(),
            "learnerIds": list(self.learner_ids),
            "status": self.status.value,
            "isAutomatic": self.is_automatic,
            "markedBy": self.marked_by,
        }
