from __future__ import annotations

import csv
import io
from collections import OrderedDict
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..common.app_logger import get_logger
from ..common.datetime_utils import FacilityClock
from ..common.validators import optional_text, parse_attendance_status, require_positive_id
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..directory.repository import DirectoryLookup
from ..notifications.emitter import NotificationEmitter
from ..schedules.model import Schedule
from ..schedules.repository import ScheduleRepository
from ..schedules.service import resolve_occurrence_date
from .ledger import AttendanceLedger
from .model import AttendanceRecord, BulkItemResult, ManualUpdate, OccurrenceAttendanceRow

CSV_FIELDS = [
    "occurrence_date",
    "learner_id",
    "last_name",
    "first_name",
    "document_number",
    "status",
    "marked_at",
    "is_manual",
    "excuse_reason",
    "notes",
]

logger = get_logger("attendance")


class AttendanceService:
    """Manual attendance workflow and per-occurrence read models."""

    def __init__(
        self,
        ledger: AttendanceLedger,
        schedules: ScheduleRepository,
        directory: DirectoryLookup,
        notifier: NotificationEmitter,
        *,
        clock: FacilityClock,
    ):
        self._ledger = ledger
        self._schedules = schedules
        self._directory = directory
        self._notifier = notifier
        self._clock = clock

    def _schedule(self, schedule_id: int) -> Schedule:
        schedule = self._schedules.get_by_id(int(schedule_id))
        if not schedule:
            raise NotFoundError("Schedule not found")
        return schedule

    def _authorizer(self, *, current_role: Role, principal_id: int):
        """Instructors may only mark their own classes; admins may mark any."""

        def authorize(record: AttendanceRecord) -> None:
            if current_role == Role.ADMIN:
                return
            if current_role != Role.INSTRUCTOR:
                raise AuthorizationError("You are not allowed to mark attendance")
            schedule = self._schedule(record.schedule_id)
            if schedule.instructor_id != int(principal_id):
                raise AuthorizationError("You can only mark attendance for your own classes")

        return authorize

    def _notify_manual(self, schedule_id: int, records: List[AttendanceRecord], principal_id: int) -> None:
        """Runs after the write has committed; errors are logged, never raised."""
        try:
            self._notifier.manual(self._schedule(schedule_id), records, principal_id)
        except Exception:
            logger.exception(
                "Manual mark notification failed schedule_id=%s attendance_ids=%s",
                schedule_id,
                [r.attendance_id for r in records],
            )

    def mark_manual(
        self,
        *,
        current_role: Role,
        principal_id: int,
        attendance_id: int,
        status: AttendanceStatus | str,
        notes: Optional[str] = None,
        excuse_reason: Optional[str] = None,
    ) -> AttendanceRecord:
        record = self._ledger.mark_manual(
            require_positive_id(attendance_id, "attendanceId"),
            status,
            principal_id,
            notes=optional_text(notes),
            excuse_reason=excuse_reason,
            authorize=self._authorizer(current_role=current_role, principal_id=principal_id),
        )
        self._notify_manual(record.schedule_id, [record], principal_id)
        return record

    def bulk_mark_manual(
        self,
        *,
        current_role: Role,
        principal_id: int,
        updates: Sequence[Mapping[str, Any]],
    ) -> List[BulkItemResult]:
        """Apply each update independently; one failed item does not stop the rest."""
        if not updates:
            raise ValidationError("updates must be a non-empty list")

        parsed: List[ManualUpdate] = []
        early: Dict[int, BulkItemResult] = {}
        for i, raw in enumerate(updates):
            try:
                parsed.append(
                    ManualUpdate(
                        attendance_id=require_positive_id(raw.get("attendanceId"), "attendanceId"),
                        status=parse_attendance_status(raw.get("status")),
                        notes=optional_text(raw.get("notes")),
                        excuse_reason=raw.get("excuseReason"),
                    )
                )
            except ValidationError as e:
                early[i] = BulkItemResult(attendance_id=_raw_id(raw), success=False, error=str(e))

        results = iter(
            self._ledger.bulk_mark_manual(
                parsed,
                principal_id,
                authorize=self._authorizer(current_role=current_role, principal_id=principal_id),
            )
        )
        ordered = [early[i] if i in early else next(results) for i in range(len(updates))]

        by_schedule: Dict[int, List[AttendanceRecord]] = OrderedDict()
        for item in ordered:
            if item.success and item.record is not None:
                by_schedule.setdefault(item.record.schedule_id, []).append(item.record)
        for schedule_id, records in by_schedule.items():
            self._notify_manual(schedule_id, records, principal_id)

        return ordered

    def _occurrence_date(self, schedule: Schedule, occurrence_date: Optional[date]) -> date:
        return resolve_occurrence_date(schedule, occurrence_date, self._clock.today())

    def list_by_occurrence(self, schedule_id: int, occurrence_date: Optional[date] = None) -> List[OccurrenceAttendanceRow]:
        schedule = self._schedule(schedule_id)
        on_date = self._occurrence_date(schedule, occurrence_date)

        records = self._ledger.list_for_occurrence(schedule.schedule_id, on_date)
        learners = self._directory.learner_summaries([r.learner_id for r in records])
        rows = [OccurrenceAttendanceRow(record=r, learner=learners.get(r.learner_id)) for r in records]

        def sort_key(row: OccurrenceAttendanceRow):
            if row.learner is None:
                return (1, "", "", row.record.learner_id)
            return (0, row.learner.last_name.lower(), row.learner.first_name.lower(), row.record.learner_id)

        return sorted(rows, key=sort_key)

    def occurrence_stats(self, schedule_id: int, occurrence_date: Optional[date] = None) -> dict:
        schedule = self._schedule(schedule_id)
        on_date = self._occurrence_date(schedule, occurrence_date)
        records = self._ledger.list_for_occurrence(schedule.schedule_id, on_date)

        counts = {s: 0 for s in AttendanceStatus}
        for r in records:
            counts[r.status] += 1
        total = len(records)
        attended = counts[AttendanceStatus.PRESENT] + counts[AttendanceStatus.LATE]
        return {
            "scheduleId": schedule.schedule_id,
            "occurrenceDate": on_date.isoformat(),
            "total": total,
            "present": counts[AttendanceStatus.PRESENT],
            "late": counts[AttendanceStatus.LATE],
            "absent": counts[AttendanceStatus.ABSENT],
            "excused": counts[AttendanceStatus.EXCUSED],
            "percentage": round(attended * 100.0 / total, 1) if total else 0.0,
        }

    def export_occurrence_csv(self, schedule_id: int, occurrence_date: Optional[date] = None) -> str:
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for row in self.list_by_occurrence(schedule_id, occurrence_date):
            r, learner = row.record, row.learner
            writer.writerow(
                {
                    "occurrence_date": r.occurrence_date.isoformat(),
                    "learner_id": r.learner_id,
                    "last_name": learner.last_name if learner else "",
                    "first_name": learner.first_name if learner else "",
                    "document_number": learner.document_number if learner else "",
                    "status": r.status.value,
                    "marked_at": r.marked_at.strftime("%Y-%m-%d %H:%M:%S") if r.marked_at else "",
                    "is_manual": "yes" if r.is_manual else "no",
                    "excuse_reason": r.excuse_reason or "",
                    "notes": r.notes or "",
                }
            )
        return out.getvalue()


def _raw_id(raw: Mapping[str, Any]) -> int:
    try:
        return int(raw.get("attendanceId") or 0)
    except (TypeError, ValueError):
        return 0
