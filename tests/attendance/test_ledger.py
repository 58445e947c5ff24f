from __future__ import annotations

from datetime import date, datetime, time

import pytest

from src.access_attendance.access_attendance.attendance.ledger import AttendanceLedger
from src.access_attendance.access_attendance.attendance.model import ManualUpdate
from src.access_attendance.access_attendance.core.enums import AttendanceStatus, SkipReason, Weekday
from src.access_attendance.access_attendance.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    VersionConflict,
)
from src.access_attendance.access_attendance.schedules.model import RecurringSchedule, ScheduleOccurrence

MONDAY = date(2025, 3, 3)
MARKED_AT = datetime(2025, 3, 3, 10, 30)


@pytest.fixture
def ledger(attendance_repo):
    return AttendanceLedger(attendance_repo, clock=lambda: MARKED_AT)


def _occurrence():
    schedule = RecurringSchedule(
        schedule_id=1,
        cohort_id=10,
        instructor_id=900,
        subject="Databases",
        day_of_week=Weekday.MONDAY,
        start_time=time(8, 0),
        end_time=time(10, 0),
    )
    return ScheduleOccurrence(schedule=schedule, occurrence_date=MONDAY)


def test_materialization_creates_one_absent_row_per_learner(ledger, attendance_repo):
    created = ledger.materialize_occurrence(1, MONDAY, [101, 102, 103])

    rows = attendance_repo.list_for_occurrence(schedule_id=1, occurrence_date=MONDAY)
    assert created == 3
    assert sorted(r.learner_id for r in rows) == [101, 102, 103]
    assert all(r.status == AttendanceStatus.ABSENT and not r.is_manual and r.marked_at is None for r in rows)


def test_materialization_is_idempotent_and_keeps_existing_rows(ledger, attendance_repo):
    ledger.materialize_occurrence(1, MONDAY, [101, 102])
    first = attendance_repo.get_for_occurrence(learner_id=101, schedule_id=1, occurrence_date=MONDAY)
    ledger.mark_manual(first.attendance_id, AttendanceStatus.PRESENT, 900)

    created = ledger.materialize_occurrence(1, MONDAY, [101, 102, 103])

    rows = attendance_repo.list_for_occurrence(schedule_id=1, occurrence_date=MONDAY)
    assert created == 1
    assert len(rows) == 3
    assert attendance_repo.get_by_id(first.attendance_id).status == AttendanceStatus.PRESENT


def test_automatic_update_retries_after_losing_the_race(ledger, attendance_repo):
    ledger.materialize_occurrence(1, MONDAY, [101])
    attendance_repo.forced_conflicts = 2

    outcome = ledger.apply_automatic(_occurrence(), 101, AttendanceStatus.PRESENT, datetime(2025, 3, 3, 7, 59))

    assert outcome.changed
    stored = attendance_repo.get_for_occurrence(learner_id=101, schedule_id=1, occurrence_date=MONDAY)
    assert stored.status == AttendanceStatus.PRESENT
    assert stored.version == outcome.record.version


def test_automatic_update_gives_up_after_max_retries(ledger, attendance_repo):
    ledger.materialize_occurrence(1, MONDAY, [101])
    attendance_repo.forced_conflicts = 10

    with pytest.raises(VersionConflict):
        ledger.apply_automatic(_occurrence(), 101, AttendanceStatus.PRESENT, datetime(2025, 3, 3, 7, 59))


def test_automatic_update_respects_manual_lock(ledger, attendance_repo):
    ledger.materialize_occurrence(1, MONDAY, [101])
    rec = attendance_repo.get_for_occurrence(learner_id=101, schedule_id=1, occurrence_date=MONDAY)
    ledger.mark_manual(rec.attendance_id, AttendanceStatus.ABSENT, 900, notes="left early")

    outcome = ledger.apply_automatic(_occurrence(), 101, AttendanceStatus.PRESENT, datetime(2025, 3, 3, 7, 59))

    assert not outcome.changed
    assert outcome.skip_reason == SkipReason.MANUAL_OVERRIDE_PROTECTED


def test_manual_mark_sets_lock_and_metadata(ledger, attendance_repo):
    ledger.materialize_occurrence(1, MONDAY, [101])
    rec = attendance_repo.get_for_occurrence(learner_id=101, schedule_id=1, occurrence_date=MONDAY)

    updated = ledger.mark_manual(rec.attendance_id, "late", 900, notes="bus strike")

    assert updated.status == AttendanceStatus.LATE
    assert updated.is_manual
    assert updated.marked_by == 900
    assert updated.marked_at == MARKED_AT
    assert updated.notes == "bus strike"
    assert attendance_repo.get_by_id(rec.attendance_id) == updated


def test_excused_requires_a_reason(ledger, attendance_repo):
    ledger.materialize_occurrence(1, MONDAY, [101])
    rec = attendance_repo.get_for_occurrence(learner_id=101, schedule_id=1, occurrence_date=MONDAY)

    with pytest.raises(ValidationError):
        ledger.mark_manual(rec.attendance_id, AttendanceStatus.EXCUSED, 900, excuse_reason="   ")

    assert attendance_repo.get_by_id(rec.attendance_id).status == AttendanceStatus.ABSENT


def test_excuse_reason_is_cleared_when_leaving_excused(ledger, attendance_repo):
    ledger.materialize_occurrence(1, MONDAY, [101])
    rec = attendance_repo.get_for_occurrence(learner_id=101, schedule_id=1, occurrence_date=MONDAY)
    ledger.mark_manual(rec.attendance_id, AttendanceStatus.EXCUSED, 900, excuse_reason="medical")

    updated = ledger.mark_manual(rec.attendance_id, AttendanceStatus.PRESENT, 900)

    assert updated.excuse_reason is None


def test_unknown_status_and_record_are_rejected(ledger, attendance_repo):
    ledger.materialize_occurrence(1, MONDAY, [101])
    rec = attendance_repo.get_for_occurrence(learner_id=101, schedule_id=1, occurrence_date=MONDAY)

    with pytest.raises(ValidationError):
        ledger.mark_manual(rec.attendance_id, "HERE", 900)
    with pytest.raises(NotFoundError):
        ledger.mark_manual(9999, AttendanceStatus.PRESENT, 900)


def test_manual_mark_surfaces_persistent_contention(ledger, attendance_repo):
    ledger.materialize_occurrence(1, MONDAY, [101])
    rec = attendance_repo.get_for_occurrence(learner_id=101, schedule_id=1, occurrence_date=MONDAY)
    attendance_repo.forced_conflicts = 10

    with pytest.raises(ConflictError):
        ledger.mark_manual(rec.attendance_id, AttendanceStatus.PRESENT, 900)


def test_bulk_mark_reports_each_item(ledger, attendance_repo):
    ledger.materialize_occurrence(1, MONDAY, [101, 102])
    a = attendance_repo.get_for_occurrence(learner_id=101, schedule_id=1, occurrence_date=MONDAY)
    b = attendance_repo.get_for_occurrence(learner_id=102, schedule_id=1, occurrence_date=MONDAY)

    results = ledger.bulk_mark_manual(
        [
            ManualUpdate(attendance_id=a.attendance_id, status=AttendanceStatus.PRESENT),
            ManualUpdate(attendance_id=b.attendance_id, status=AttendanceStatus.EXCUSED),
            ManualUpdate(attendance_id=777, status=AttendanceStatus.LATE),
        ],
        900,
    )

    assert [r.success for r in results] == [True, False, False]
    assert results[1].error == "An excuse reason is required to mark EXCUSED"
    assert attendance_repo.get_by_id(a.attendance_id).status == AttendanceStatus.PRESENT
    assert attendance_repo.get_by_id(b.attendance_id).status == AttendanceStatus.ABSENT


def test_bulk_mark_keeps_going_after_a_storage_error(ledger, attendance_repo):
    ledger.materialize_occurrence(1, MONDAY, [101, 102, 103])
    ids = [
        attendance_repo.get_for_occurrence(learner_id=lid, schedule_id=1, occurrence_date=MONDAY).attendance_id
        for lid in (101, 102, 103)
    ]
    original = attendance_repo.update_if_version

    def flaky_update(**kwargs):
        if kwargs["attendance_id"] == ids[1]:
            raise OSError("Lost connection to MySQL server during query")
        return original(**kwargs)

    attendance_repo.update_if_version = flaky_update

    results = ledger.bulk_mark_manual(
        [ManualUpdate(attendance_id=i, status=AttendanceStatus.PRESENT) for i in ids],
        900,
    )

    assert [r.success for r in results] == [True, False, True]
    assert "Lost connection" in results[1].error
    assert attendance_repo.get_by_id(ids[0]).is_manual is True
    assert attendance_repo.get_by_id(ids[1]).status == AttendanceStatus.ABSENT
    assert attendance_repo.get_by_id(ids[2]).status == AttendanceStatus.PRESENT


def test_authorizer_blocks_before_any_write(ledger, attendance_repo):
    ledger.materialize_occurrence(1, MONDAY, [101])
    rec = attendance_repo.get_for_occurrence(learner_id=101, schedule_id=1, occurrence_date=MONDAY)

    def deny(_record):
        raise AuthorizationError("not your class")

    with pytest.raises(AuthorizationError):
        ledger.mark_manual(rec.attendance_id, AttendanceStatus.PRESENT, 42, authorize=deny)

    assert attendance_repo.get_by_id(rec.attendance_id).version == 0
