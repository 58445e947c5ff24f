from __future__ import annotations

from datetime import date, time
from typing import Any, Dict, Optional, Sequence

from ..core.enums import ScheduleKind, Weekday
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import DatedSchedule, RecurringSchedule, Schedule
from .repository import ScheduleRepository

_COLUMNS = """
    schedule_id, kind, cohort_id, instructor_id, subject, classroom,
    day_of_week, session_date, start_time, end_time, late_tolerance_minutes, is_active
"""


def _to_schedule(r: Dict[str, Any]) -> Schedule:
    """Resolve the row's discriminant once, at lookup time."""
    common = dict(
        schedule_id=int(r["schedule_id"]),
        cohort_id=int(r["cohort_id"]),
        instructor_id=int(r["instructor_id"]),
        subject=r["subject"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        late_tolerance_minutes=int(r["late_tolerance_minutes"]),
        classroom=r.get("classroom"),
        is_active=bool(r.get("is_active", True)),
    )
    if ScheduleKind(r["kind"]) == ScheduleKind.RECURRING:
        return RecurringSchedule(day_of_week=Weekday(int(r["day_of_week"])), **common)
    return DatedSchedule(session_date=r["session_date"], **common)


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_active_occurrences(self, *, cohort_id: int, on_date: date, day_of_week: int) -> Sequence[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM class_schedules
                WHERE cohort_id=%s AND is_active=1
                  AND ((kind='DATED' AND session_date=%s) OR (kind='RECURRING' AND day_of_week=%s))
                ORDER BY start_time ASC, schedule_id ASC
                """,
                (int(cohort_id), on_date, int(day_of_week)),
            )
            return [_to_schedule(r) for r in fetchall(cur)]

    def get_by_id(self, schedule_id: int) -> Optional[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM class_schedules WHERE schedule_id=%s", (int(schedule_id),))
            r = fetchone(cur)
            return _to_schedule(r) if r else None

    def _insert(self, *, kind: ScheduleKind, day_of_week: Optional[int], session_date: Optional[date], **values) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO class_schedules(
                    kind, cohort_id, instructor_id, subject, classroom,
                    day_of_week, session_date, start_time, end_time, late_tolerance_minutes
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    kind.value,
                    int(values["cohort_id"]),
                    int(values["instructor_id"]),
                    values["subject"],
                    values.get("classroom"),
                    day_of_week,
                    session_date,
                    values["start_time"],
                    values["end_time"],
                    int(values["late_tolerance_minutes"]),
                ),
            )
            return int(cur.lastrowid)

    def create_recurring(
        self,
        *,
        cohort_id: int,
        instructor_id: int,
        subject: str,
        day_of_week: Weekday,
        start_time: time,
        end_time: time,
        late_tolerance_minutes: int,
        classroom: Optional[str] = None,
    ) -> int:
        return self._insert(
            kind=ScheduleKind.RECURRING,
            day_of_week=int(day_of_week),
            session_date=None,
            cohort_id=cohort_id,
            instructor_id=instructor_id,
            subject=subject,
            classroom=classroom,
            start_time=start_time,
            end_time=end_time,
            late_tolerance_minutes=late_tolerance_minutes,
        )

    def create_dated(
        self,
        *,
        cohort_id: int,
        instructor_id: int,
        subject: str,
        session_date: date,
        start_time: time,
        end_time: time,
        late_tolerance_minutes: int,
        classroom: Optional[str] = None,
    ) -> int:
        return self._insert(
            kind=ScheduleKind.DATED,
            day_of_week=None,
            session_date=session_date,
            cohort_id=cohort_id,
            instructor_id=instructor_id,
            subject=subject,
            classroom=classroom,
            start_time=start_time,
            end_time=end_time,
            late_tolerance_minutes=late_tolerance_minutes,
        )

    def set_active(self, *, schedule_id: int, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE class_schedules SET is_active=%s WHERE schedule_id=%s",
                (1 if is_active else 0, int(schedule_id)),
            )
            return cur.rowcount > 0
