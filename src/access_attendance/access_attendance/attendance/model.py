from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from ..core.enums import AttendanceStatus, SkipReason
from ..directory.model import LearnerSummary


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: attendance of one learner at one schedule occurrence."""

    attendance_id: int
    learner_id: int
    schedule_id: int
    occurrence_date: date
    status: AttendanceStatus = AttendanceStatus.ABSENT
    marked_at: Optional[datetime] = None
    is_manual: bool = False
    marked_by: Optional[int] = None
    notes: Optional[str] = None
    excuse_reason: Optional[str] = None
    version: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.attendance_id,
            "learnerId": self.learner_id,
            "scheduleId": self.schedule_id,
            "occurrenceDate": self.occurrence_date.isoformat(),
            "status": self.status.value,
            "markedAt": self.marked_at.isoformat() if self.marked_at else None,
            "isManual": self.is_manual,
            "markedBy": self.marked_by,
            "notes": self.notes,
            "excuseReason": self.excuse_reason,
        }


@dataclass(frozen=True)
class SkipEntry:
    schedule_id: Optional[int]
    reason: SkipReason
    detail: Optional[str] = None


@dataclass(frozen=True)
class FailureEntry:
    schedule_id: Optional[int]
    error: str


@dataclass
class ReconciliationResult:
    learner_id: int
    entry_time: datetime
    updated: List[AttendanceRecord] = field(default_factory=list)
    skipped: List[SkipEntry] = field(default_factory=list)
    failed: List[FailureEntry] = field(default_factory=list)

    def skip_reasons(self) -> List[SkipReason]:
        return [s.reason for s in self.skipped]


@dataclass(frozen=True)
class AutomaticOutcome:
    """What the ledger did with an automatic status decision."""

    record: AttendanceRecord
    changed: bool
    skip_reason: Optional[SkipReason] = None


@dataclass(frozen=True)
class ManualUpdate:
    attendance_id: int
    status: AttendanceStatus
    notes: Optional[str] = None
    excuse_reason: Optional[str] = None


@dataclass(frozen=True)
class BulkItemResult:
    attendance_id: int
    success: bool
    record: Optional[AttendanceRecord] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "attendanceId": self.attendance_id,
            "success": self.success,
            "record": self.record.to_dict() if self.record else None,
            "error": self.error,
        }


@dataclass(frozen=True)
class OccurrenceAttendanceRow:
    """Read-model for the per-occurrence attendance list."""

    record: AttendanceRecord
    learner: Optional[LearnerSummary]

    def to_dict(self) -> dict:
        data = self.record.to_dict()
        data["learner"] = (
            {
                "id": self.learner.learner_id,
                "firstName": self.learner.first_name,
                "lastName": self.learner.last_name,
                "documentNumber": self.learner.document_number,
            }
            if self.learner
            else None
        )
        return data
