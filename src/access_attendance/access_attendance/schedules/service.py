from __future__ import annotations

from datetime import date, time
from typing import Any, Mapping, Optional

from ..attendance.ledger import AttendanceLedger
from ..common.app_logger import get_logger
from ..common.datetime_utils import FacilityClock, next_weekday_on_or_after, parse_iso_date
from ..common.validators import optional_text, parse_clock_time, require_non_empty, require_positive_id
from ..core.constants import DEFAULT_LATE_TOLERANCE_MINUTES
from ..core.enums import Role, ScheduleKind, Weekday
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..directory.repository import DirectoryLookup
from .model import DatedSchedule, RecurringSchedule, Schedule
from .repository import ScheduleRepository

logger = get_logger("schedules")

_SCHEDULE_EDITORS = {Role.ADMIN, Role.INSTRUCTOR}


def resolve_occurrence_date(schedule: Schedule, requested: Optional[date], today: date) -> date:
    """Pick the concrete date of a schedule occurrence.

    Dated schedules have exactly one; recurring ones default to the next
    meeting on or after ``today``.
    """
    if isinstance(schedule, DatedSchedule):
        if requested is not None and requested != schedule.session_date:
            raise ValidationError("Dated schedule does not meet on that date")
        return schedule.session_date

    if requested is None:
        return next_weekday_on_or_after(today, schedule.day_of_week)
    if not schedule.occurs_on(requested):
        raise ValidationError(f"Schedule meets on {schedule.day_of_week.name.title()}, not on {requested.isoformat()}")
    return requested


class ScheduleService:
    def __init__(
        self,
        schedules: ScheduleRepository,
        directory: DirectoryLookup,
        ledger: AttendanceLedger,
        *,
        clock: FacilityClock,
        default_late_tolerance: int = DEFAULT_LATE_TOLERANCE_MINUTES,
    ):
        self._schedules = schedules
        self._directory = directory
        self._ledger = ledger
        self._clock = clock
        self._default_late_tolerance = int(default_late_tolerance)

    def get(self, schedule_id: int) -> Schedule:
        schedule = self._schedules.get_by_id(int(schedule_id))
        if not schedule:
            raise NotFoundError("Schedule not found")
        return schedule

    def _parse_weekday(self, value: Any) -> Weekday:
        if isinstance(value, str) and not value.strip().isdigit():
            try:
                return Weekday[value.strip().upper()]
            except KeyError:
                raise ValidationError("Invalid day of week")
        try:
            return Weekday(int(value))
        except (TypeError, ValueError):
            raise ValidationError("Invalid day of week (0=Monday .. 6=Sunday)")

    def create_schedule(self, *, current_role: Role, principal_id: int, data: Mapping[str, Any]) -> dict:
        """Create a dated or recurring schedule and materialize its first occurrence."""
        if current_role not in _SCHEDULE_EDITORS:
            raise AuthorizationError("You are not allowed to create schedules")

        try:
            kind = ScheduleKind(str(data.get("kind") or "").upper())
        except ValueError:
            raise ValidationError("kind must be RECURRING or DATED")

        cohort_id = require_positive_id(data.get("cohortId"), "cohortId")
        instructor_id = data.get("instructorId")
        if current_role == Role.INSTRUCTOR:
            instructor_id = principal_id
        instructor_id = require_positive_id(instructor_id, "instructorId")

        subject = require_non_empty(str(data.get("subject") or ""), "subject")
        start_time: time = parse_clock_time(data.get("startTime"), "startTime")
        end_time: time = parse_clock_time(data.get("endTime"), "endTime")
        if end_time <= start_time:
            raise ValidationError("endTime must be after startTime")

        tolerance = data.get("lateToleranceMinutes")
        try:
            tolerance = self._default_late_tolerance if tolerance in (None, "") else int(tolerance)
        except (TypeError, ValueError):
            raise ValidationError("lateToleranceMinutes must be an integer")
        if tolerance < 0:
            raise ValidationError("lateToleranceMinutes cannot be negative")

        common = dict(
            cohort_id=cohort_id,
            instructor_id=instructor_id,
            subject=subject,
            start_time=start_time,
            end_time=end_time,
            late_tolerance_minutes=tolerance,
            classroom=optional_text(data.get("classroom")),
        )
        if kind == ScheduleKind.RECURRING:
            schedule_id = self._schedules.create_recurring(day_of_week=self._parse_weekday(data.get("dayOfWeek")), **common)
        else:
            schedule_id = self._schedules.create_dated(
                session_date=parse_iso_date(str(data.get("sessionDate") or "")), **common
            )

        schedule = self.get(schedule_id)
        logger.info("Created %s schedule=%s cohort=%s", kind.value, schedule_id, cohort_id)
        occurrence = self._materialize(schedule, None)
        return {"schedule": schedule_to_dict(schedule), "occurrence": occurrence}

    def materialize_occurrence(
        self,
        *,
        current_role: Role,
        schedule_id: int,
        occurrence_date: Optional[date] = None,
    ) -> dict:
        if current_role not in _SCHEDULE_EDITORS:
            raise AuthorizationError("You are not allowed to open class occurrences")

        schedule = self.get(schedule_id)
        if not schedule.is_active:
            raise ValidationError("Schedule is inactive")
        return self._materialize(schedule, occurrence_date)

    def _materialize(self, schedule: Schedule, requested: Optional[date]) -> dict:
        on_date = resolve_occurrence_date(schedule, requested, self._clock.today())
        learners = list(self._directory.active_learners(schedule.cohort_id))
        created = self._ledger.materialize_occurrence(schedule.schedule_id, on_date, learners)
        return {
            "scheduleId": schedule.schedule_id,
            "occurrenceDate": on_date.isoformat(),
            "learners": len(learners),
            "created": created,
        }

    def deactivate(self, *, current_role: Role, principal_id: int, schedule_id: int) -> None:
        schedule = self.get(schedule_id)
        if current_role != Role.ADMIN and not (
            current_role == Role.INSTRUCTOR and int(principal_id) == schedule.instructor_id
        ):
            raise AuthorizationError("You are not allowed to deactivate this schedule")

        if schedule.is_active and not self._schedules.set_active(schedule_id=schedule.schedule_id, is_active=False):
            raise ValidationError("Could not deactivate schedule")
        logger.info("Deactivated schedule=%s", schedule.schedule_id)


def schedule_to_dict(schedule: Schedule) -> dict:
    data = {
        "id": schedule.schedule_id,
        "kind": schedule.kind.value,
        "cohortId": schedule.cohort_id,
        "instructorId": schedule.instructor_id,
        "subject": schedule.subject,
        "classroom": schedule.classroom,
        "startTime": schedule.start_time.strftime("%H:%M:%S"),
        "endTime": schedule.end_time.strftime("%H:%M:%S"),
        "lateToleranceMinutes": schedule.late_tolerance_minutes,
        "isActive": schedule.is_active,
    }
    if isinstance(schedule, RecurringSchedule):
        data["dayOfWeek"] = int(schedule.day_of_week)
    else:
        data["sessionDate"] = schedule.session_date.isoformat()
    return data
