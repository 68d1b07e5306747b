from __future__ import annotations

import time
from threading import Event, Thread

import pytest

from cosmos_sync.config import InitialSync
from cosmos_sync.errors import SchedulerStateError
from cosmos_sync.models import SyncResult
from cosmos_sync.worker import LifecycleState, Scheduler, ThreadPoolManager, Worker


class SlowService:
    def __init__(self, gate: Event, hold: float) -> None:
        self.gate = gate
        self.hold = hold
        self.calls = 0

    def sync(self) -> SyncResult:
        self.calls += 1
        self.gate.wait(self.hold)
        return SyncResult(domain="slow")


def _scheduler(names, gate: Event, hold: float, shutdown_timeout: float, worker_timeout: float = 5.0) -> Scheduler:
    pool = ThreadPoolManager()
    scheduler = Scheduler(shutdown_timeout=shutdown_timeout, pool=pool)
    for name in names:
        scheduler.add_worker(
            Worker(
                name,
                SlowService(gate, hold),
                interval=60,
                initial_sync=InitialSync.BLOCKING,
                timeout=worker_timeout,
                pool=pool,
            )
        )
    return scheduler


def test_stop_right_after_start_is_bounded() -> None:
    gate = Event()
    scheduler = _scheduler(["position", "catalog", "telemetry"], gate, hold=0.3, shutdown_timeout=2.0)
    started = time.monotonic()
    scheduler.start()
    graceful = scheduler.stop()
    elapsed = time.monotonic() - started

    assert graceful is True
    assert elapsed < 2.5
    assert scheduler.state is LifecycleState.STOPPED
    assert all(worker.state is LifecycleState.STOPPED for worker in scheduler.workers)


def test_stop_times_out_on_hung_invocation_and_second_stop_is_noop() -> None:
    gate = Event()
    scheduler = _scheduler(["jwst"], gate, hold=10.0, shutdown_timeout=0.2)
    try:
        scheduler.start()
        time.sleep(0.05)
        started = time.monotonic()
        assert scheduler.stop() is False
        assert time.monotonic() - started < 1.5

        again = time.monotonic()
        assert scheduler.stop() is False
        assert time.monotonic() - again < 0.1
        assert scheduler.state is LifecycleState.STOPPED
    finally:
        gate.set()


def test_double_stop_after_graceful_shutdown() -> None:
    gate = Event()
    gate.set()
    scheduler = _scheduler(["apod"], gate, hold=0.0, shutdown_timeout=2.0)
    scheduler.start()
    assert scheduler.stop() is True
    assert scheduler.stop() is True


def test_stop_during_shutdown_waits_for_the_first_outcome() -> None:
    gate = Event()
    scheduler = _scheduler(["neo", "donki"], gate, hold=0.4, shutdown_timeout=3.0)
    scheduler.start()
    outcomes = {}
    first = Thread(target=lambda: outcomes.setdefault("first", scheduler.stop()))
    first.start()
    deadline = time.monotonic() + 2.0
    while scheduler.state is LifecycleState.RUNNING and time.monotonic() < deadline:
        time.sleep(0.005)
    assert scheduler.state is LifecycleState.STOPPING

    assert scheduler.stop() is True
    assert scheduler.state is LifecycleState.STOPPED
    first.join(3.0)
    assert outcomes["first"] is True


def test_stop_on_idle_scheduler() -> None:
    scheduler = Scheduler(shutdown_timeout=1.0)
    assert scheduler.stop() is True
    assert scheduler.state is LifecycleState.STOPPED
    with pytest.raises(SchedulerStateError):
        scheduler.start()


def test_workers_cannot_be_added_after_start() -> None:
    gate = Event()
    gate.set()
    scheduler = _scheduler(["neo"], gate, hold=0.0, shutdown_timeout=2.0)
    with pytest.raises(ValueError):
        scheduler.add_worker(Worker("neo", SlowService(gate, 0.0), interval=60))
    scheduler.start()
    scheduler.start()
    assert scheduler.is_running()
    with pytest.raises(SchedulerStateError):
        scheduler.add_worker(Worker("late", SlowService(gate, 0.0), interval=60))
    scheduler.stop()
    with pytest.raises(SchedulerStateError):
        scheduler.start()


def test_status_lists_every_worker() -> None:
    gate = Event()
    gate.set()
    scheduler = _scheduler(["position", "catalog"], gate, hold=0.0, shutdown_timeout=2.0)
    assert [entry["name"] for entry in scheduler.status()] == ["position", "catalog"]
    assert {entry["state"] for entry in scheduler.status()} == {"idle"}
    scheduler.stop()
