from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Callable, List, Optional, Sequence

from ..common.app_logger import get_logger
from ..common.validators import optional_text, parse_attendance_status
from ..core.constants import MAX_VERSION_RETRIES
from ..core.enums import AttendanceStatus, SkipReason
from ..core.exceptions import ConflictError, DomainError, NotFoundError, ValidationError, VersionConflict
from ..schedules.model import ScheduleOccurrence
from .model import AttendanceRecord, AutomaticOutcome, BulkItemResult, ManualUpdate
from .repository import AttendanceRepository

logger = get_logger("ledger")

Authorizer = Callable[[AttendanceRecord], None]


class AttendanceLedger:
    """Sole writer of attendance records.

    Every write is an optimistic compare-and-set on ``version``; losing the race
    means re-reading the row and deciding again.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        clock: Callable[[], datetime] = datetime.now,
        max_retries: int = MAX_VERSION_RETRIES,
    ):
        self._attendance = attendance
        self._clock = clock
        self._max_retries = max(1, int(max_retries))

    def get(self, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(attendance_id))
        if not record:
            raise NotFoundError("Attendance record not found")
        return record

    def materialize_occurrence(self, schedule_id: int, occurrence_date: date, learner_ids: Sequence[int]) -> int:
        created = self._attendance.insert_absent_missing(
            schedule_id=int(schedule_id),
            occurrence_date=occurrence_date,
            learner_ids=list(learner_ids),
        )
        logger.info(
            "Materialized schedule=%s date=%s learners=%d created=%d",
            schedule_id,
            occurrence_date.isoformat(),
            len(learner_ids),
            created,
        )
        return created

    def list_for_occurrence(self, schedule_id: int, occurrence_date: date) -> Sequence[AttendanceRecord]:
        return self._attendance.list_for_occurrence(schedule_id=int(schedule_id), occurrence_date=occurrence_date)

    def _fetch_or_materialize(self, occurrence: ScheduleOccurrence, learner_id: int) -> AttendanceRecord:
        key = dict(learner_id=learner_id, schedule_id=occurrence.schedule_id, occurrence_date=occurrence.occurrence_date)
        record = self._attendance.get_for_occurrence(**key)
        if record:
            return record

        self.materialize_occurrence(occurrence.schedule_id, occurrence.occurrence_date, [learner_id])
        record = self._attendance.get_for_occurrence(**key)
        if not record:
            raise NotFoundError("Attendance record could not be materialized")
        return record

    def apply_automatic(
        self,
        occurrence: ScheduleOccurrence,
        learner_id: int,
        status: AttendanceStatus,
        entry_time: datetime,
    ) -> AutomaticOutcome:
        for _ in range(self._max_retries):
            record = self._fetch_or_materialize(occurrence, learner_id)

            if record.is_manual:
                return AutomaticOutcome(record=record, changed=False, skip_reason=SkipReason.MANUAL_OVERRIDE_PROTECTED)
            if record.status == status:
                return AutomaticOutcome(record=record, changed=False, skip_reason=SkipReason.ALREADY_RECORDED)

            ok = self._attendance.update_if_version(
                attendance_id=record.attendance_id,
                expected_version=record.version,
                status=status,
                marked_at=entry_time,
                is_manual=False,
                marked_by=None,
                notes=record.notes,
                excuse_reason=record.excuse_reason,
            )
            if ok:
                return AutomaticOutcome(
                    record=replace(
                        record,
                        status=status,
                        marked_at=entry_time,
                        is_manual=False,
                        marked_by=None,
                        version=record.version + 1,
                    ),
                    changed=True,
                )
            logger.debug("Version conflict on attendance_id=%s, re-reading", record.attendance_id)

        raise VersionConflict(f"Attendance for learner {learner_id} kept changing; gave up")

    def mark_manual(
        self,
        attendance_id: int,
        status: AttendanceStatus | str,
        principal_id: int,
        notes: Optional[str] = None,
        excuse_reason: Optional[str] = None,
        *,
        authorize: Optional[Authorizer] = None,
    ) -> AttendanceRecord:
        status = parse_attendance_status(status)
        excuse_reason = optional_text(excuse_reason)
        if status == AttendanceStatus.EXCUSED and not excuse_reason:
            raise ValidationError("An excuse reason is required to mark EXCUSED")
        if status != AttendanceStatus.EXCUSED:
            excuse_reason = None

        for attempt in range(self._max_retries):
            record = self.get(attendance_id)
            if authorize is not None and attempt == 0:
                authorize(record)

            marked_at = self._clock()
            new_notes = notes if notes is not None else record.notes
            ok = self._attendance.update_if_version(
                attendance_id=record.attendance_id,
                expected_version=record.version,
                status=status,
                marked_at=marked_at,
                is_manual=True,
                marked_by=int(principal_id),
                notes=new_notes,
                excuse_reason=excuse_reason,
            )
            if ok:
                logger.info(
                    "Manual mark attendance_id=%s status=%s by=%s", record.attendance_id, status.value, principal_id
                )
                return replace(
                    record,
                    status=status,
                    marked_at=marked_at,
                    is_manual=True,
                    marked_by=int(principal_id),
                    notes=new_notes,
                    excuse_reason=excuse_reason,
                    version=record.version + 1,
                )

        raise ConflictError("Attendance record is being modified concurrently, try again")

    def bulk_mark_manual(
        self,
        updates: Sequence[ManualUpdate],
        principal_id: int,
        *,
        authorize: Optional[Authorizer] = None,
    ) -> List[BulkItemResult]:
        results: List[BulkItemResult] = []
        for u in updates:
            try:
                record = self.mark_manual(
                    u.attendance_id,
                    u.status,
                    principal_id,
                    notes=u.notes,
                    excuse_reason=u.excuse_reason,
                    authorize=authorize,
                )
                results.append(BulkItemResult(attendance_id=u.attendance_id, success=True, record=record))
            except DomainError as e:
                results.append(BulkItemResult(attendance_id=u.attendance_id, success=False, error=str(e)))
            except Exception as e:
                logger.exception("Bulk manual mark failed attendance_id=%s", u.attendance_id)
                results.append(BulkItemResult(attendance_id=u.attendance_id, success=False, error=str(e)))
        return results
