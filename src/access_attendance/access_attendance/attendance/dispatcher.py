from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from typing import List, Optional, Protocol

from ..access.model import AccessRecord
from ..common.app_logger import get_logger
from .model import ReconciliationResult
from .reconciliation import ReconciliationEngine

logger = get_logger("dispatcher")


class Dispatcher(Protocol):
    def submit(self, learner_id: int, entry_time: datetime) -> Optional[Future]:
        raise NotImplementedError

    def on_session_opened(self, record: AccessRecord) -> None:
        raise NotImplementedError

    def shutdown(self, wait: bool = True) -> None:
        raise NotImplementedError


def _run_guarded(engine: ReconciliationEngine, learner_id: int, entry_time: datetime) -> Optional[ReconciliationResult]:
    """Error boundary of the follow-up task."""
    try:
        return engine.reconcile(learner_id, entry_time)
    except Exception:
        logger.exception("Reconciliation task crashed learner=%s at=%s", learner_id, entry_time)
        return None


class InlineDispatcher:
    """Runs reconciliation in the caller's thread, after the session commit."""

    def __init__(self, engine: ReconciliationEngine):
        self._engine = engine
        self.last_result: Optional[ReconciliationResult] = None

    def submit(self, learner_id: int, entry_time: datetime) -> Optional[Future]:
        future: Future = Future()
        self.last_result = _run_guarded(self._engine, learner_id, entry_time)
        future.set_result(self.last_result)
        return future

    def on_session_opened(self, record: AccessRecord) -> None:
        self.submit(record.person_id, record.entry_time)

    def shutdown(self, wait: bool = True) -> None:
        self._engine.close()


class ReconciliationDispatcher:
    """Background reconciliation, FIFO per learner and parallel across learners.

    Each learner is pinned to one single-thread shard, so a later check-in is
    reconciled only after the earlier one has been persisted.
    """

    def __init__(self, engine: ReconciliationEngine, *, workers: int = 4):
        self._engine = engine
        self._shards: List[ThreadPoolExecutor] = [
            ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"reconcile-{i}") for i in range(max(1, int(workers)))
        ]
        self._closed = False
        self._lock = threading.Lock()

    def _shard_for(self, learner_id: int) -> ThreadPoolExecutor:
        return self._shards[hash(int(learner_id)) % len(self._shards)]

    def submit(self, learner_id: int, entry_time: datetime) -> Optional[Future]:
        with self._lock:
            if self._closed:
                logger.warning("Dispatcher closed; dropping reconciliation learner=%s", learner_id)
                return None
            return self._shard_for(learner_id).submit(_run_guarded, self._engine, learner_id, entry_time)

    def on_session_opened(self, record: AccessRecord) -> None:
        self.submit(record.person_id, record.entry_time)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        for shard in self._shards:
            shard.shutdown(wait=wait)
        self._engine.close()
