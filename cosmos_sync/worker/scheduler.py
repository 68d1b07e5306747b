"""Scheduler owning every worker's lifecycle with a bounded shutdown."""

from __future__ import annotations

import time
from threading import Event, Lock, Thread
from typing import Any, Dict, List

import structlog

from ..errors import SchedulerStateError
from ..logging_conf import component_logger
from .lifecycle import Lifecycle, LifecycleState
from .thread_pool import ThreadPoolManager
from .worker import Worker


class Scheduler:
    """Launch workers concurrently and stop them against one deadline."""

    def __init__(
        self,
        shutdown_timeout: float = 10.0,
        pool: ThreadPoolManager | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.shutdown_timeout = shutdown_timeout
        self.pool = pool or ThreadPoolManager()
        self.logger = logger or component_logger("scheduler")
        self._lifecycle = Lifecycle()
        self._workers: List[Worker] = []
        self._workers_lock = Lock()
        self._launchers: List[Thread] = []
        self._graceful: bool | None = None
        self._stopped = Event()

    @property
    def state(self) -> LifecycleState:
        return self._lifecycle.state

    @property
    def workers(self) -> List[Worker]:
        with self._workers_lock:
            return list(self._workers)

    def is_running(self) -> bool:
        return self.state is LifecycleState.RUNNING

    def add_worker(self, worker: Worker) -> None:
        with self._workers_lock:
            if self.state is not LifecycleState.IDLE:
                raise SchedulerStateError(f"cannot add worker '{worker.name}' after start")
            if any(existing.name == worker.name for existing in self._workers):
                raise ValueError(f"worker '{worker.name}' already registered")
            self._workers.append(worker)
        self.logger.debug("worker_registered", worker=worker.name)

    def start(self) -> None:
        """Launch every worker on its own thread and return immediately."""

        with self._workers_lock:
            if not self._lifecycle.transition([LifecycleState.IDLE], LifecycleState.RUNNING):
                if self.state is LifecycleState.RUNNING:
                    return
                raise SchedulerStateError("scheduler cannot be restarted after stop")
            workers = list(self._workers)

        for worker in workers:
            launcher = Thread(target=self._launch, args=(worker,), name=f"launch-{worker.name}", daemon=True)
            self._launchers.append(launcher)
            launcher.start()
        self.logger.info("scheduler_started", workers=[worker.name for worker in workers])

    def _launch(self, worker: Worker) -> None:
        try:
            worker.start()
        except SchedulerStateError as exc:
            self.logger.info("worker_launch_skipped", worker=worker.name, reason=str(exc))

    def stop(self) -> bool:
        """Signal all workers and wait at most ``shutdown_timeout`` seconds.

        Returns True when every worker stopped in time. Calling it again is a
        no-op that returns the first outcome; a call made while the first one
        is still shutting down waits for it, bounded by ``shutdown_timeout``.
        """

        if self._lifecycle.transition([LifecycleState.IDLE], LifecycleState.STOPPED):
            self.pool.shutdown(wait=False)
            self._graceful = True
            self._stopped.set()
            self.logger.info("scheduler_stopped", workers=0)
            return True
        if not self._lifecycle.transition([LifecycleState.RUNNING], LifecycleState.STOPPING):
            if not self._stopped.wait(self.shutdown_timeout):
                return False
            return bool(self._graceful)

        deadline = time.monotonic() + self.shutdown_timeout
        workers = self.workers
        for worker in workers:
            worker.stop()

        for launcher in self._launchers:
            launcher.join(max(0.0, deadline - time.monotonic()))

        pending = []
        for worker in workers:
            # a worker whose launch finished after the first signal needs another one
            worker.stop()
            if not worker.join(max(0.0, deadline - time.monotonic())):
                pending.append(worker.name)

        self.pool.shutdown(wait=False, cancel_futures=True)
        self._lifecycle.force(LifecycleState.STOPPED)
        self._graceful = not pending
        self._stopped.set()
        if pending:
            self.logger.warning("scheduler_stop_timeout", pending=pending, timeout=self.shutdown_timeout)
        else:
            self.logger.info("scheduler_stopped", workers=len(workers))
        return self._graceful

    def status(self) -> List[Dict[str, Any]]:
        return [worker.status() for worker in self.workers]


__all__ = ["Scheduler"]
