from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...schedules.model import ScheduleOccurrence


@dataclass(frozen=True)
class StatusDecision:
    """``status`` is None when the entry must not touch the record."""

    status: Optional[AttendanceStatus]
    note: Optional[str] = None


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how an entry event maps to an attendance status."""

    @abstractmethod
    def decide(self, *, entry_time: datetime, occurrence: ScheduleOccurrence) -> StatusDecision:
        raise NotImplementedError
