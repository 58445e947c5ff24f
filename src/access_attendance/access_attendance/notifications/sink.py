from __future__ import annotations

import threading
from collections import Counter, deque
from datetime import datetime, timedelta
from typing import Deque, Dict, Iterable, List, Protocol

from ..core.constants import DEFAULT_NOTIFICATION_LIMIT, NOTIFICATION_HISTORY_LIMIT, NOTIFICATION_RECENT_MINUTES
from ..core.enums import NotificationType
from .model import NotificationPayload


class NotificationSink(Protocol):
    def publish(self, payload: NotificationPayload) -> None:
        raise NotImplementedError


class RecentNotificationSink(NotificationSink):
    """In-process sink keeping the newest ``history_limit`` payloads per instructor.

    Payloads are deduplicated by ``notification_id``; "read" notifications are
    dropped from the history.
    """

    def __init__(self, *, history_limit: int = NOTIFICATION_HISTORY_LIMIT):
        self._history_limit = max(1, int(history_limit))
        self._by_instructor: Dict[int, Deque[NotificationPayload]] = {}
        self._lock = threading.Lock()

    def publish(self, payload: NotificationPayload) -> None:
        with self._lock:
            history = self._by_instructor.setdefault(payload.instructor_id, deque(maxlen=self._history_limit))
            if any(n.notification_id == payload.notification_id for n in history):
                return
            history.appendleft(payload)

    def recent(self, instructor_id: int, limit: int = DEFAULT_NOTIFICATION_LIMIT) -> List[NotificationPayload]:
        with self._lock:
            return list(self._by_instructor.get(int(instructor_id), ()))[: max(0, int(limit))]

    def mark_read(self, instructor_id: int, notification_ids: Iterable[str]) -> int:
        ids = set(notification_ids)
        with self._lock:
            history = self._by_instructor.get(int(instructor_id))
            if not history:
                return 0
            kept = [n for n in history if n.notification_id not in ids]
            removed = len(history) - len(kept)
            self._by_instructor[int(instructor_id)] = deque(kept, maxlen=self._history_limit)
            return removed

    def purge_older_than(self, cutoff: datetime) -> int:
        removed = 0
        with self._lock:
            for instructor_id, history in list(self._by_instructor.items()):
                kept = [n for n in history if n.timestamp > cutoff]
                removed += len(history) - len(kept)
                self._by_instructor[instructor_id] = deque(kept, maxlen=self._history_limit)
        return removed

    def stats(self, instructor_id: int, *, now: datetime) -> dict:
        items = self.recent(instructor_id, limit=self._history_limit)
        since = now - timedelta(minutes=NOTIFICATION_RECENT_MINUTES)
        by_type = Counter(n.type for n in items)
        return {
            "total": len(items),
            "recent": sum(1 for n in items if n.timestamp > since),
            "byType": {
                "auto": by_type[NotificationType.AUTO_ATTENDANCE],
                "manual": by_type[NotificationType.MANUAL_ATTENDANCE],
            },
        }
