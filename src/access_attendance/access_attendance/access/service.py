from __future__ import annotations

import math
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from ..common.app_logger import get_logger
from ..common.datetime_utils import round_minutes
from ..core.constants import DEFAULT_HISTORY_PAGE_SIZE, FORCED_CHECKOUT_NOTE, MAX_HISTORY_PAGE_SIZE
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .model import AccessRecord
from .repository import AccessRepository

logger = get_logger("access")

SessionOpenedHook = Callable[[AccessRecord], None]


class AccessSessionTracker:
    """Owns access sessions: at most one open session per person.

    ``on_session_opened`` runs after the open has been committed. It is a
    follow-up, so whatever it raises is logged and the open still stands.
    """

    def __init__(self, access: AccessRepository, *, on_session_opened: Optional[SessionOpenedHook] = None):
        self._access = access
        self._on_session_opened = on_session_opened

    def open_session(self, person_id: int, at: datetime) -> AccessRecord:
        if self._access.get_open_for_person(person_id):
            raise ConflictError("Person already has an open access session")

        record = self._access.create_open(person_id=person_id, entry_time=at)
        logger.info("Session opened person=%s access_id=%s at=%s", person_id, record.access_id, at.isoformat())

        if self._on_session_opened is not None:
            try:
                self._on_session_opened(record)
            except Exception:
                logger.exception("Follow-up for access_id=%s failed; session stays open", record.access_id)
        return record

    def close_session(self, person_id: int, at: datetime) -> AccessRecord:
        return self._close(person_id, at, notes=None)

    def force_close(self, person_id: int, at: datetime, reason: Optional[str] = None) -> AccessRecord:
        reason = (reason or "").strip()
        note = f"{FORCED_CHECKOUT_NOTE}: {reason}" if reason else FORCED_CHECKOUT_NOTE
        record = self._close(person_id, at, notes=note)
        logger.warning("Forced check-out person=%s access_id=%s reason=%r", person_id, record.access_id, reason)
        return record

    def _close(self, person_id: int, at: datetime, *, notes: Optional[str]) -> AccessRecord:
        current = self._access.get_open_for_person(person_id)
        if not current:
            raise NotFoundError("No open access session for this person")
        if at < current.entry_time:
            raise ValidationError("Exit time cannot be earlier than entry time")

        closed = self._access.close(
            access_id=current.access_id,
            exit_time=at,
            duration_minutes=round_minutes(at - current.entry_time),
            notes=notes,
        )
        if closed is None:
            # Closed by a concurrent check-out between our read and write.
            raise NotFoundError("No open access session for this person")

        logger.info(
            "Session closed person=%s access_id=%s duration=%smin", person_id, closed.access_id, closed.duration_minutes
        )
        return closed

    def current_occupancy(self) -> dict:
        records = self._access.list_open()
        return {"total": len(records), "records": [r.to_dict() for r in records]}

    def history(
        self,
        *,
        page: int = 1,
        limit: int = DEFAULT_HISTORY_PAGE_SIZE,
        on_date: Optional[date] = None,
        person_id: Optional[int] = None,
    ) -> dict:
        page = max(1, int(page))
        limit = min(max(1, int(limit)), MAX_HISTORY_PAGE_SIZE)

        start = end = None
        if on_date is not None:
            start = datetime.combine(on_date, datetime.min.time())
            end = start + timedelta(days=1)

        records, total = self._access.list_history(
            offset=(page - 1) * limit,
            limit=limit,
            start=start,
            end=end,
            person_id=person_id,
        )
        return {
            "data": [r.to_dict() for r in records],
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if total else 0,
        }

    def stats(self, on_date: date) -> dict:
        start = datetime.combine(on_date, datetime.min.time())
        records = self._access.list_between(start=start, end=start + timedelta(days=1))

        by_hour = Counter(r.entry_time.hour for r in records)
        durations = [r.duration_minutes for r in records if r.duration_minutes is not None]
        average = round(sum(durations) / len(durations)) if durations else 0

        return {
            "date": on_date.isoformat(),
            "totalAccess": len(records),
            "currentlyInside": len(self._access.list_open()),
            "accessByHour": [{"hour": h, "count": by_hour[h]} for h in sorted(by_hour)],
            "averageDurationMinutes": average,
        }
