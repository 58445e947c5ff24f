from __future__ import annotations

import hashlib
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..common.app_logger import get_logger
from ..core.enums import AttendanceStatus, NotificationType
from ..schedules.model import Schedule
from .model import NotificationPayload
from .sink import NotificationSink

logger = get_logger("notifications")


def _notification_id(kind: NotificationType, schedule_id: int, records: Sequence[AttendanceRecord]) -> str:
    # Same mutation -> same id, so redelivery is deduplicated by the sink.
    parts = [f"{r.learner_id}:{r.occurrence_date.isoformat()}:{r.status.value}:{r.version}" for r in records]
    digest = hashlib.sha1("|".join(sorted(parts)).encode("utf-8")).hexdigest()[:16]
    return f"{kind.value.lower()}_{schedule_id}_{digest}"


class NotificationEmitter:
    """Decides whether and what to notify; delivery belongs to the sink.

    Publishing is best-effort: sink errors are logged and swallowed here so an
    attendance write never fails because of its notification.
    """

    def __init__(self, sink: NotificationSink, *, clock: Callable[[], datetime] = datetime.now):
        self._sink = sink
        self._clock = clock

    def automatic(self, schedule: Schedule, record: AttendanceRecord) -> Optional[NotificationPayload]:
        """There is no acting principal on this path, so the instructor is always told."""
        payload = NotificationPayload(
            notification_id=_notification_id(NotificationType.AUTO_ATTENDANCE, schedule.schedule_id, [record]),
            type=NotificationType.AUTO_ATTENDANCE,
            timestamp=self._clock(),
            instructor_id=schedule.instructor_id,
            schedule_id=schedule.schedule_id,
            occurrence_date=record.occurrence_date,
            learner_ids=(record.learner_id,),
            status=record.status,
            is_automatic=True,
        )
        return payload if self._publish(payload) else None

    def manual(
        self,
        schedule: Schedule,
        records: Sequence[AttendanceRecord],
        principal_id: int,
    ) -> List[NotificationPayload]:
        """One payload per resulting status; nothing when the instructor acted on their own class."""
        if not records or int(principal_id) == int(schedule.instructor_id):
            return []

        groups: Dict[tuple, List[AttendanceRecord]] = OrderedDict()
        for r in records:
            groups.setdefault((r.occurrence_date, r.status), []).append(r)

        sent: List[NotificationPayload] = []
        for (occurrence_date, status), members in groups.items():
            payload = NotificationPayload(
                notification_id=_notification_id(NotificationType.MANUAL_ATTENDANCE, schedule.schedule_id, members),
                type=NotificationType.MANUAL_ATTENDANCE,
                timestamp=self._clock(),
                instructor_id=schedule.instructor_id,
                schedule_id=schedule.schedule_id,
                occurrence_date=occurrence_date,
                learner_ids=tuple(r.learner_id for r in members),
                status=AttendanceStatus(status),
                is_automatic=False,
                marked_by=int(principal_id),
            )
            if self._publish(payload):
                sent.append(payload)
        return sent

    def _publish(self, payload: NotificationPayload) -> bool:
        try:
            self._sink.publish(payload)
            return True
        except Exception:
            logger.exception(
                "Notification %s for instructor=%s could not be published", payload.notification_id, payload.instructor_id
            )
            return False
