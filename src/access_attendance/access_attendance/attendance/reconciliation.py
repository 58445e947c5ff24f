from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.app_logger import get_logger
from ..common.datetime_utils import FacilityClock
from ..core.constants import DEFAULT_RECONCILIATION_WORKERS
from ..core.enums import SkipReason
from ..core.exceptions import DependencyFailure
from ..directory.repository import DirectoryLookup
from ..notifications.emitter import NotificationEmitter
from ..schedules.model import Schedule, ScheduleOccurrence
from ..schedules.repository import ScheduleRepository
from .factory import AttendanceStrategyFactory
from .ledger import AttendanceLedger
from .model import FailureEntry, ReconciliationResult, SkipEntry

logger = get_logger("reconciliation")


class ReconciliationEngine:
    """Turns one entry event into attendance decisions for the learner's classes.

    ``reconcile`` never raises: lookup problems and per-schedule errors end up
    as skip/failure entries on the result.
    """

    def __init__(
        self,
        *,
        directory: DirectoryLookup,
        schedules: ScheduleRepository,
        ledger: AttendanceLedger,
        notifier: NotificationEmitter,
        clock: FacilityClock,
        strategy_factory: AttendanceStrategyFactory | None = None,
        lookup_timeout: Optional[float] = None,
        lookup_workers: int = DEFAULT_RECONCILIATION_WORKERS,
    ):
        self._directory = directory
        self._schedules = schedules
        self._ledger = ledger
        self._notifier = notifier
        self._clock = clock
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._lookup_timeout = lookup_timeout
        self._lookup_workers = max(1, int(lookup_workers))
        self._pool_lock = threading.Lock()
        self._closed = False
        self._lookup_pool: ThreadPoolExecutor | None = None
        if lookup_timeout is not None:
            self._lookup_pool = self._new_lookup_pool()

    def _new_lookup_pool(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=self._lookup_workers, thread_name_prefix="schedule-lookup")

    def close(self) -> None:
        with self._pool_lock:
            self._closed = True
            pool = self._lookup_pool
        if pool is not None:
            pool.shutdown(wait=False)

    def _retire_lookup_pool(self, pool: ThreadPoolExecutor) -> None:
        """Swap in a fresh pool; threads stuck in the old one exit when their call returns."""
        with self._pool_lock:
            if self._closed or self._lookup_pool is not pool:
                return
            self._lookup_pool = self._new_lookup_pool()
        pool.shutdown(wait=False)
        logger.warning("Schedule lookup pool replaced after a timeout")

    def _resolve_cohort(self, learner_id: int) -> Optional[int]:
        try:
            return self._directory.learner_cohort(learner_id)
        except Exception as e:
            raise DependencyFailure(f"directory lookup failed: {e}") from e

    def _find_schedules(self, cohort_id: int, on_date: date) -> Sequence[Schedule]:
        kwargs = dict(cohort_id=cohort_id, on_date=on_date, day_of_week=on_date.weekday())
        if self._lookup_pool is None:
            try:
                return self._schedules.find_active_occurrences(**kwargs)
            except Exception as e:
                raise DependencyFailure(f"schedule lookup failed: {e}") from e

        try:
            with self._pool_lock:
                pool = self._lookup_pool
                future = pool.submit(self._schedules.find_active_occurrences, **kwargs)
        except RuntimeError as e:
            raise DependencyFailure(f"schedule lookup failed: {e}") from e

        try:
            return future.result(timeout=self._lookup_timeout)
        except FutureTimeout:
            future.cancel()
            self._retire_lookup_pool(pool)
            raise
        except Exception as e:
            raise DependencyFailure(f"schedule lookup failed: {e}") from e

    def reconcile(self, learner_id: int, entry_time: datetime) -> ReconciliationResult:
        entry_time = self._clock.localize(entry_time)
        result = ReconciliationResult(learner_id=learner_id, entry_time=entry_time)

        try:
            cohort_id = self._resolve_cohort(learner_id)
        except DependencyFailure as e:
            logger.exception("Reconciliation aborted for person=%s", learner_id)
            result.failed.append(FailureEntry(schedule_id=None, error=str(e)))
            return result

        if cohort_id is None:
            result.skipped.append(SkipEntry(schedule_id=None, reason=SkipReason.NOT_ENROLLED))
            return result

        on_date = entry_time.date()
        try:
            schedules = self._find_schedules(cohort_id, on_date)
        except FutureTimeout:
            logger.warning("Schedule lookup timed out cohort=%s date=%s", cohort_id, on_date.isoformat())
            result.skipped.append(SkipEntry(schedule_id=None, reason=SkipReason.TIMEOUT))
            return result
        except DependencyFailure as e:
            logger.exception("Schedule lookup failed cohort=%s date=%s", cohort_id, on_date.isoformat())
            result.failed.append(FailureEntry(schedule_id=None, error=str(e)))
            return result

        for schedule in schedules:
            try:
                self._reconcile_one(result, ScheduleOccurrence(schedule=schedule, occurrence_date=on_date))
            except Exception as e:
                logger.exception("Reconciliation failed learner=%s schedule=%s", learner_id, schedule.schedule_id)
                result.failed.append(FailureEntry(schedule_id=schedule.schedule_id, error=str(e)))

        logger.info(
            "Reconciled learner=%s at=%s updated=%d skipped=%d failed=%d",
            learner_id,
            entry_time.isoformat(),
            len(result.updated),
            len(result.skipped),
            len(result.failed),
        )
        return result

    def _reconcile_one(self, result: ReconciliationResult, occurrence: ScheduleOccurrence) -> None:
        strategy = self._factory.for_entry(entry_time=result.entry_time, occurrence=occurrence)
        decision = strategy.decide(entry_time=result.entry_time, occurrence=occurrence)

        if decision.status is None:
            result.skipped.append(
                SkipEntry(schedule_id=occurrence.schedule_id, reason=SkipReason.OUTSIDE_WINDOW, detail=decision.note)
            )
            return

        outcome = self._ledger.apply_automatic(occurrence, result.learner_id, decision.status, result.entry_time)
        if not outcome.changed:
            result.skipped.append(SkipEntry(schedule_id=occurrence.schedule_id, reason=outcome.skip_reason))
            return

        result.updated.append(outcome.record)
        logger.debug(
            "learner=%s schedule=%s -> %s (%s)",
            result.learner_id,
            occurrence.schedule_id,
            decision.status.value,
            decision.note or "on time",
        )
        self._notifier.automatic(occurrence.schedule, outcome.record)
