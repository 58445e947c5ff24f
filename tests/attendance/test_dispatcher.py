from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta

from src.access_attendance.access_attendance.attendance.dispatcher import InlineDispatcher, ReconciliationDispatcher
from src.access_attendance.access_attendance.attendance.model import ReconciliationResult


class RecordingEngine:
    def __init__(self, *, slow_learner=None, crash_learner=None):
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()
        self._slow_learner = slow_learner
        self._crash_learner = crash_learner

    def reconcile(self, learner_id, entry_time):
        if learner_id == self._slow_learner:
            time.sleep(0.01)
        if learner_id == self._crash_learner:
            raise RuntimeError("boom")
        with self._lock:
            self.calls.append((learner_id, entry_time))
        return ReconciliationResult(learner_id=learner_id, entry_time=entry_time)

    def close(self):
        self.closed = True


def test_events_of_one_learner_run_in_submission_order():
    engine = RecordingEngine(slow_learner=7)
    dispatcher = ReconciliationDispatcher(engine, workers=3)
    base = datetime(2025, 3, 3, 7, 0)

    futures = []
    for i in range(20):
        futures.append(dispatcher.submit(7, base + timedelta(minutes=i)))
        futures.append(dispatcher.submit(8, base + timedelta(minutes=i)))
    for f in futures:
        f.result(timeout=5)
    dispatcher.shutdown()

    for learner in (7, 8):
        times = [t for lid, t in engine.calls if lid == learner]
        assert times == sorted(times)
        assert len(times) == 20
    assert engine.closed


def test_crashing_task_does_not_poison_the_shard():
    engine = RecordingEngine(crash_learner=1)
    dispatcher = ReconciliationDispatcher(engine, workers=1)
    at = datetime(2025, 3, 3, 8, 0)

    crashed = dispatcher.submit(1, at)
    ok = dispatcher.submit(2, at)

    assert crashed.result(timeout=5) is None
    assert ok.result(timeout=5).learner_id == 2
    dispatcher.shutdown()


def test_submissions_after_shutdown_are_dropped():
    engine = RecordingEngine()
    dispatcher = ReconciliationDispatcher(engine, workers=2)
    dispatcher.shutdown()

    assert dispatcher.submit(1, datetime(2025, 3, 3, 8, 0)) is None
    assert engine.calls == []


def test_inline_dispatcher_runs_immediately_and_keeps_result():
    engine = RecordingEngine()
    dispatcher = InlineDispatcher(engine)

    future = dispatcher.submit(3, datetime(2025, 3, 3, 8, 0))

    assert future.done()
    assert dispatcher.last_result.learner_id == 3
    assert engine.calls == [(3, datetime(2025, 3, 3, 8, 0))]
