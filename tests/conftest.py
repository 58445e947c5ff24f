from __future__ import annotations

import threading
import time as time_module
from dataclasses import replace
from datetime import date, datetime, time
from typing import Optional

import pytest

from src.access_attendance.access_attendance.access.model import AccessRecord
from src.access_attendance.access_attendance.attendance.model import AttendanceRecord
from src.access_attendance.access_attendance.common.datetime_utils import FacilityClock, load_timezone
from src.access_attendance.access_attendance.container import assemble
from src.access_attendance.access_attendance.core.enums import AccessStatus, Weekday
from src.access_attendance.access_attendance.core.exceptions import ConflictError
from src.access_attendance.access_attendance.directory.model import LearnerSummary
from src.access_attendance.access_attendance.schedules.model import DatedSchedule, RecurringSchedule

# 2025-03-03 is a Monday
MONDAY = date(2025, 3, 3)
COHORT_ID = 10
INSTRUCTOR_ID = 900


class InMemoryAccess:
    """Access store enforcing one open record per person, like the unique key in MySQL."""

    def __init__(self):
        self._records: dict[int, AccessRecord] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def get_open_for_person(self, person_id: int) -> Optional[AccessRecord]:
        with self._lock:
            for r in self._records.values():
                if r.person_id == person_id and r.exit_time is None:
                    return r
        return None

    def create_open(self, *, person_id: int, entry_time: datetime) -> AccessRecord:
        with self._lock:
            if any(r.person_id == person_id and r.exit_time is None for r in self._records.values()):
                raise ConflictError("Person already has an open access session")
            rec = AccessRecord(
                access_id=self._next_id,
                person_id=person_id,
                entry_time=entry_time,
                exit_time=None,
                status=AccessStatus.OPEN,
            )
            self._records[rec.access_id] = rec
            self._next_id += 1
            return rec

    def close(self, *, access_id: int, exit_time: datetime, duration_minutes: int, notes=None):
        with self._lock:
            rec = self._records.get(access_id)
            if not rec or rec.exit_time is not None:
                return None
            closed = replace(
                rec,
                exit_time=exit_time,
                status=AccessStatus.CLOSED,
                duration_minutes=duration_minutes,
                notes=notes if notes is not None else rec.notes,
            )
            self._records[access_id] = closed
            return closed

    def list_open(self):
        with self._lock:
            return [r for r in self._records.values() if r.exit_time is None]

    def list_history(self, *, offset, limit, start=None, end=None, person_id=None):
        with self._lock:
            items = list(self._records.values())
        if start is not None:
            items = [r for r in items if r.entry_time >= start]
        if end is not None:
            items = [r for r in items if r.entry_time < end]
        if person_id is not None:
            items = [r for r in items if r.person_id == person_id]
        items.sort(key=lambda r: (r.entry_time, r.access_id), reverse=True)
        return items[offset : offset + limit], len(items)

    def list_between(self, *, start, end):
        with self._lock:
            return [r for r in self._records.values() if start <= r.entry_time < end]

    def all(self):
        with self._lock:
            return list(self._records.values())


class InMemorySchedules:
    def __init__(self):
        self._schedules: dict[int, object] = {}
        self._next_id = 1
        self.delay_seconds = 0.0
        self.fail_with: Optional[Exception] = None

    def add(self, schedule):
        self._schedules[schedule.schedule_id] = schedule
        self._next_id = max(self._next_id, schedule.schedule_id + 1)
        return schedule

    def find_active_occurrences(self, *, cohort_id, on_date, day_of_week):
        if self.delay_seconds:
            time_module.sleep(self.delay_seconds)
        if self.fail_with is not None:
            raise self.fail_with
        return [
            s
            for s in self._schedules.values()
            if s.is_active and s.cohort_id == cohort_id and s.occurs_on(on_date)
        ]

    def get_by_id(self, schedule_id):
        return self._schedules.get(int(schedule_id))

    def create_recurring(self, *, day_of_week, **values) -> int:
        sid = self._next_id
        self.add(RecurringSchedule(schedule_id=sid, day_of_week=Weekday(day_of_week), **values))
        return sid

    def create_dated(self, *, session_date, **values) -> int:
        sid = self._next_id
        self.add(DatedSchedule(schedule_id=sid, session_date=session_date, **values))
        return sid

    def set_active(self, *, schedule_id, is_active) -> bool:
        s = self._schedules.get(int(schedule_id))
        if not s:
            return False
        self._schedules[int(schedule_id)] = replace(s, is_active=is_active)
        return True


class InMemoryAttendance:
    """Attendance store with the optimistic version check of the MySQL repository."""

    def __init__(self):
        self._records: dict[int, AttendanceRecord] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        # Number of upcoming update_if_version calls that lose the race
        self.forced_conflicts = 0

    def get_by_id(self, attendance_id):
        with self._lock:
            return self._records.get(int(attendance_id))

    def get_for_occurrence(self, *, learner_id, schedule_id, occurrence_date):
        with self._lock:
            for r in self._records.values():
                if (r.learner_id, r.schedule_id, r.occurrence_date) == (learner_id, schedule_id, occurrence_date):
                    return r
        return None

    def insert_absent_missing(self, *, schedule_id, occurrence_date, learner_ids) -> int:
        created = 0
        with self._lock:
            existing = {
                r.learner_id
                for r in self._records.values()
                if r.schedule_id == schedule_id and r.occurrence_date == occurrence_date
            }
            for lid in learner_ids:
                if lid in existing:
                    continue
                self._records[self._next_id] = AttendanceRecord(
                    attendance_id=self._next_id,
                    learner_id=lid,
                    schedule_id=schedule_id,
                    occurrence_date=occurrence_date,
                )
                existing.add(lid)
                self._next_id += 1
                created += 1
        return created

    def update_if_version(self, *, attendance_id, expected_version, status, marked_at, is_manual, marked_by, notes, excuse_reason):
        with self._lock:
            rec = self._records.get(attendance_id)
            if self.forced_conflicts > 0 and rec is not None:
                self.forced_conflicts -= 1
                self._records[attendance_id] = replace(rec, version=rec.version + 1)
                return False
            if not rec or rec.version != expected_version:
                return False
            self._records[attendance_id] = replace(
                rec,
                status=status,
                marked_at=marked_at,
                is_manual=is_manual,
                marked_by=marked_by,
                notes=notes,
                excuse_reason=excuse_reason,
                version=rec.version + 1,
            )
            return True

    def list_for_occurrence(self, *, schedule_id, occurrence_date):
        with self._lock:
            return [
                r
                for r in self._records.values()
                if r.schedule_id == schedule_id and r.occurrence_date == occurrence_date
            ]


class InMemoryDirectory:
    def __init__(self):
        self.cohort_by_person: dict[int, int] = {}
        self.summaries: dict[int, LearnerSummary] = {}
        self.inactive: set[int] = set()
        self.fail_with: Optional[Exception] = None

    def enroll(self, learner_id, cohort_id, first_name, last_name, document_number=""):
        self.cohort_by_person[learner_id] = cohort_id
        self.summaries[learner_id] = LearnerSummary(
            learner_id=learner_id,
            first_name=first_name,
            last_name=last_name,
            document_number=document_number or str(learner_id),
            cohort_id=cohort_id,
        )

    def learner_cohort(self, person_id):
        if self.fail_with is not None:
            raise self.fail_with
        return self.cohort_by_person.get(person_id)

    def active_learners(self, cohort_id):
        return sorted(
            lid for lid, cid in self.cohort_by_person.items() if cid == cohort_id and lid not in self.inactive
        )

    def learner_summaries(self, learner_ids):
        return {lid: self.summaries[lid] for lid in learner_ids if lid in self.summaries}


class RecordingSink:
    def __init__(self):
        self.published = []
        self.fail_with: Optional[Exception] = None

    def publish(self, payload):
        if self.fail_with is not None:
            raise self.fail_with
        self.published.append(payload)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 3, 3, 7, 0, 0)


class FixedClock(FacilityClock):
    """Facility clock frozen at a given local wall time."""

    def __init__(self, now: datetime):
        super().__init__(load_timezone("America/Bogota"))
        self.current = now

    def now(self) -> datetime:
        return self.current


@pytest.fixture
def clock(fixed_now) -> FixedClock:
    return FixedClock(fixed_now)


@pytest.fixture
def access_repo() -> InMemoryAccess:
    return InMemoryAccess()


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def directory() -> InMemoryDirectory:
    d = InMemoryDirectory()
    d.enroll(101, COHORT_ID, "Laura", "Gomez")
    d.enroll(102, COHORT_ID, "Andres", "Perez")
    d.enroll(103, COHORT_ID, "Camila", "Alvarez")
    return d


@pytest.fixture
def monday_class() -> RecurringSchedule:
    return RecurringSchedule(
        schedule_id=1,
        cohort_id=COHORT_ID,
        instructor_id=INSTRUCTOR_ID,
        subject="Databases",
        day_of_week=Weekday.MONDAY,
        start_time=time(8, 0),
        end_time=time(10, 0),
        late_tolerance_minutes=20,
        classroom="B-201",
    )


@pytest.fixture
def schedules_repo(monday_class) -> InMemorySchedules:
    repo = InMemorySchedules()
    repo.add(monday_class)
    return repo


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def container(clock, access_repo, schedules_repo, attendance_repo, directory):
    c = assemble(
        clock=clock,
        access_repo=access_repo,
        schedules_repo=schedules_repo,
        attendance_repo=attendance_repo,
        directory=directory,
        inline=True,
        lookup_timeout=None,
    )
    yield c
    c.shutdown()


@pytest.fixture
def materialized(container, directory, monday_class):
    """Monday occurrence opened for the whole cohort."""
    container.ledger.materialize_occurrence(
        monday_class.schedule_id, MONDAY, directory.active_learners(COHORT_ID)
    )
    return MONDAY
