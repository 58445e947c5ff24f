from __future__ import annotations

from typing import Mapping, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import LearnerSummary
from .repository import DirectoryLookup


class MySQLDirectoryRepository(DirectoryLookup):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def learner_cohort(self, person_id: int) -> Optional[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT l.cohort_id
                FROM learners l
                JOIN cohorts c ON c.cohort_id = l.cohort_id
                WHERE l.learner_id=%s AND l.is_active=1 AND c.is_active=1
                """,
                (int(person_id),),
            )
            row = fetchone(cur)
            if not row or row.get("cohort_id") is None:
                return None
            return int(row["cohort_id"])

    def active_learners(self, cohort_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT learner_id FROM learners WHERE cohort_id=%s AND is_active=1 ORDER BY learner_id",
                (int(cohort_id),),
            )
            return [int(r["learner_id"]) for r in fetchall(cur)]

    def learner_summaries(self, learner_ids: Sequence[int]) -> Mapping[int, LearnerSummary]:
        ids = sorted({int(i) for i in learner_ids})
        if not ids:
            return {}

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT learner_id, first_name, last_name, document_number, cohort_id
                FROM learners
                WHERE learner_id IN ({in_clause(ids)})
                """,
                tuple(ids),
            )
            return {
                int(r["learner_id"]): LearnerSummary(
                    learner_id=int(r["learner_id"]),
                    first_name=r["first_name"],
                    last_name=r["last_name"],
                    document_number=r["document_number"],
                    cohort_id=r.get("cohort_id"),
                )
                for r in fetchall(cur)
            }
