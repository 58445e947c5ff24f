from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence, Tuple

from .model import AccessRecord


class AccessRepository(Protocol):
    def get_open_for_person(self, person_id: int) -> Optional[AccessRecord]:
        raise NotImplementedError

    def create_open(self, *, person_id: int, entry_time: datetime) -> AccessRecord:
        """Insert an OPEN record.

        Must raise ConflictError when another open record exists for the person,
        so concurrent check-ins cannot both succeed.
        """

        raise NotImplementedError

    def close(
        self,
        *,
        access_id: int,
        exit_time: datetime,
        duration_minutes: int,
        notes: Optional[str] = None,
    ) -> Optional[AccessRecord]:
        """Close the record if it is still open; None when it was already closed."""

        raise NotImplementedError

    def list_open(self) -> Sequence[AccessRecord]:
        raise NotImplementedError

    def list_history(
        self,
        *,
        offset: int,
        limit: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        person_id: Optional[int] = None,
    ) -> Tuple[Sequence[AccessRecord], int]:
        raise NotImplementedError

    def list_between(self, *, start: datetime, end: datetime) -> Sequence[AccessRecord]:
        raise NotImplementedError
