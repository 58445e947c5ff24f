from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AccessStatus


@dataclass(frozen=True)
class AccessRecord:
    """Domain entity: one physical entry/exit pair."""

    access_id: int
    person_id: int
    entry_time: datetime
    exit_time: Optional[datetime]
    status: AccessStatus
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.exit_time is None

    def to_dict(self) -> dict:
        return {
            "id": self.access_id,
            "personId": self.person_id,
            "entryTime": self.entry_time.isoformat(),
            "exitTime": self.exit_time.isoformat() if self.exit_time else None,
            "status": self.status.value,
            "durationMinutes": self.duration_minutes,
            "notes": self.notes,
        }
