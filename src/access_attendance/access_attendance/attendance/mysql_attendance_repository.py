from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, learner_id, schedule_id, occurrence_date, status, marked_at,
    is_manual, marked_by, notes, excuse_reason, version
"""


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        learner_id=int(r["learner_id"]),
        schedule_id=int(r["schedule_id"]),
        occurrence_date=r["occurrence_date"],
        status=AttendanceStatus(r["status"]),
        marked_at=r.get("marked_at"),
        is_manual=bool(r.get("is_manual")),
        marked_by=r.get("marked_by"),
        notes=r.get("notes"),
        excuse_reason=r.get("excuse_reason"),
        version=int(r.get("version") or 0),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_occurrence(self, *, learner_id: int, schedule_id: int, occurrence_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE learner_id=%s AND schedule_id=%s AND occurrence_date=%s
                """,
                (int(learner_id), int(schedule_id), occurrence_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def insert_absent_missing(self, *, schedule_id: int, occurrence_date: date, learner_ids: Sequence[int]) -> int:
        ids = sorted({int(i) for i in learner_ids})
        if not ids:
            return 0

        with db_cursor(self._conn_factory) as (_, cur):
            # uq_attendance_occurrence turns repeats into no-ops.
            cur.executemany(
                """
                INSERT IGNORE INTO attendance_records(learner_id, schedule_id, occurrence_date, status, is_manual)
                VALUES(%s,%s,%s,%s,0)
                """,
                [(i, int(schedule_id), occurrence_date, AttendanceStatus.ABSENT.value) for i in ids],
            )
            return max(int(cur.rowcount), 0)

    def update_if_version(
        self,
        *,
        attendance_id: int,
        expected_version: int,
        status: AttendanceStatus,
        marked_at: Optional[datetime],
        is_manual: bool,
        marked_by: Optional[int],
        notes: Optional[str],
        excuse_reason: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET status=%s, marked_at=%s, is_manual=%s, marked_by=%s, notes=%s, excuse_reason=%s,
                    version=version+1
                WHERE attendance_id=%s AND version=%s
                """,
                (
                    status.value,
                    marked_at,
                    1 if is_manual else 0,
                    marked_by,
                    notes,
                    excuse_reason,
                    int(attendance_id),
                    int(expected_version),
                ),
            )
            return cur.rowcount > 0

    def list_for_occurrence(self, *, schedule_id: int, occurrence_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE schedule_id=%s AND occurrence_date=%s
                ORDER BY learner_id ASC
                """,
                (int(schedule_id), occurrence_date),
            )
            return [_to_record(r) for r in fetchall(cur)]
