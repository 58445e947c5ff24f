from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence, Tuple

from mysql.connector.errors import IntegrityError

from ..core.enums import AccessStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AccessRecord
from .repository import AccessRepository

_COLUMNS = "access_id, person_id, entry_time, exit_time, status, duration_minutes, notes"


def _to_record(r: Dict[str, Any]) -> AccessRecord:
    return AccessRecord(
        access_id=int(r["access_id"]),
        person_id=int(r["person_id"]),
        entry_time=r["entry_time"],
        exit_time=r.get("exit_time"),
        status=AccessStatus(r["status"]),
        duration_minutes=r.get("duration_minutes"),
        notes=r.get("notes"),
    )


class MySQLAccessRepository(AccessRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_open_for_person(self, person_id: int) -> Optional[AccessRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM access_records WHERE person_id=%s AND exit_time IS NULL",
                (int(person_id),),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create_open(self, *, person_id: int, entry_time: datetime) -> AccessRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO access_records(person_id, entry_time, status) VALUES(%s,%s,%s)",
                    (int(person_id), entry_time, AccessStatus.OPEN.value),
                )
                access_id = int(cur.lastrowid)
        except IntegrityError as e:
            # Another check-in for this person committed first
            if is_duplicate_key(e, "uq_access_one_open"):
                raise ConflictError("Person already has an open access session") from e
            raise

        return AccessRecord(
            access_id=access_id,
            person_id=int(person_id),
            entry_time=entry_time,
            exit_time=None,
            status=AccessStatus.OPEN,
        )

    def close(
        self,
        *,
        access_id: int,
        exit_time: datetime,
        duration_minutes: int,
        notes: Optional[str] = None,
    ) -> Optional[AccessRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE access_records
                SET exit_time=%s, status=%s, duration_minutes=%s, notes=COALESCE(%s, notes)
                WHERE access_id=%s AND exit_time IS NULL
                """,
                (exit_time, AccessStatus.CLOSED.value, int(duration_minutes), notes, int(access_id)),
            )
            if cur.rowcount == 0:
                return None
            cur.execute(f"SELECT {_COLUMNS} FROM access_records WHERE access_id=%s", (int(access_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_open(self) -> Sequence[AccessRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM access_records WHERE exit_time IS NULL ORDER BY entry_time DESC")
            return [_to_record(r) for r in fetchall(cur)]

    def list_history(
        self,
        *,
        offset: int,
        limit: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        person_id: Optional[int] = None,
    ) -> Tuple[Sequence[AccessRecord], int]:
        clauses = ["1=1"]
        params: list[object] = []
        if start is not None and end is not None:
            clauses.append("entry_time >= %s AND entry_time < %s")
            params.extend([start, end])
        if person_id is not None:
            clauses.append("person_id=%s")
            params.append(int(person_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM access_records WHERE {where}", tuple(params))
            total = int((fetchone(cur) or {}).get("total") or 0)

            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM access_records
                WHERE {where}
                ORDER BY entry_time DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params) + (int(limit), int(offset)),
            )
            return [_to_record(r) for r in fetchall(cur)], total

    def list_between(self, *, start: datetime, end: datetime) -> Sequence[AccessRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM access_records
                WHERE entry_time >= %s AND entry_time < %s
                ORDER BY entry_time ASC
                """,
                (start, end),
            )
            return [_to_record(r) for r in fetchall(cur)]
