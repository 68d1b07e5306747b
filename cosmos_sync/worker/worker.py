"""Interval worker wrapping one synchronization service."""

from __future__ import annotations

from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from threading import Event, Lock, Thread
from typing import Any, Dict, Optional

import structlog

from ..config import InitialSync
from ..errors import CosmosSyncError, SchedulerStateError
from ..logging_conf import component_logger
from ..models import SyncResult
from ..sync import SyncService
from .lifecycle import Lifecycle, LifecycleState
from .thread_pool import ThreadPoolManager


class Worker:
    """Run ``service.sync`` every ``interval`` seconds on a dedicated thread.

    Each invocation is submitted to the worker's single-thread executor and
    awaited for at most ``timeout`` seconds, so ticks never overlap and a hung
    fetch delays the loop by at most one deadline. Failures are logged and
    kept for :meth:`status`; they never stop the loop.
    """

    def __init__(
        self,
        name: str,
        service: SyncService,
        interval: float,
        initial_sync: InitialSync = InitialSync.BLOCKING,
        timeout: float = 30.0,
        pool: ThreadPoolManager | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if interval <= 0 or timeout <= 0:
            raise ValueError("interval and timeout must be positive")
        self.name = name
        self.service = service
        self.interval = interval
        self.initial_sync = InitialSync(initial_sync)
        self.timeout = timeout
        self._owns_pool = pool is None
        self.pool = pool or ThreadPoolManager()
        self.logger = logger or component_logger("worker").bind(worker=name)

        self._lifecycle = Lifecycle()
        self._stop_event = Event()
        self._thread: Thread | None = None
        self._inflight: Future | None = None
        self._stats_lock = Lock()
        self._ticks = 0
        self.last_result: SyncResult | None = None
        self.last_error: str | None = None

    @property
    def state(self) -> LifecycleState:
        return self._lifecycle.state

    @property
    def ticks(self) -> int:
        with self._stats_lock:
            return self._ticks

    def is_running(self) -> bool:
        return self.state is LifecycleState.RUNNING

    def start(self) -> None:
        """Start the loop; a no-op while running, an error once stopped."""

        if not self._lifecycle.transition([LifecycleState.IDLE], LifecycleState.RUNNING):
            if self.state is LifecycleState.RUNNING:
                return
            raise SchedulerStateError(f"worker '{self.name}' cannot be restarted after stop")

        self.logger.info(
            "worker_started",
            interval=self.interval,
            initial_sync=self.initial_sync.value,
            timeout=self.timeout,
        )
        if self.initial_sync is InitialSync.BLOCKING:
            self.tick()

        thread = Thread(target=self._loop, name=f"worker-{self.name}", daemon=True)
        self._thread = thread
        if self.state is not LifecycleState.RUNNING:
            # stop() arrived during the blocking invocation
            self._finish()
            return
        thread.start()

    def stop(self) -> None:
        """Signal the loop to exit after the current tick; never blocks."""

        if self._lifecycle.transition([LifecycleState.IDLE], LifecycleState.STOPPED):
            self._release_pool()
            return
        if not self._lifecycle.transition([LifecycleState.RUNNING], LifecycleState.STOPPING):
            return
        self._stop_event.set()
        self.logger.info("worker_stopping")

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the loop thread; True once the worker reached ``stopped``."""

        thread = self._thread
        if thread is not None and thread.ident is not None:
            thread.join(timeout)
        return self.state is LifecycleState.STOPPED

    def tick(self) -> Optional[SyncResult]:
        """Run one invocation under the deadline; errors are recorded, not raised."""

        if self._inflight is not None and not self._inflight.done():
            self.logger.warning("worker_tick_skipped", reason="previous invocation still running")
            return None
        with self._stats_lock:
            self._ticks += 1
        try:
            future = self.pool.get(self.name, max_workers=1).submit(self.service.sync)
            self._inflight = future
            result = future.result(timeout=self.timeout)
        except FutureTimeout:
            self._record_error(f"invocation exceeded {self.timeout}s deadline")
            self.logger.warning("worker_tick_timeout", timeout=self.timeout)
            return None
        except CosmosSyncError as exc:
            self._record_error(str(exc))
            self.logger.warning("worker_tick_failed", error=str(exc), error_type=type(exc).__name__)
            return None
        except Exception as exc:  # noqa: BLE001
            self._record_error(repr(exc))
            self.logger.exception("worker_tick_crashed", error=repr(exc))
            return None

        with self._stats_lock:
            self.last_result = result
            if result.error is None:
                self.last_error = None
            else:
                self.last_error = result.error
        self.logger.debug("worker_tick", status=result.status.value, saved=result.saved)
        return result

    def status(self) -> Dict[str, Any]:
        with self._stats_lock:
            return {
                "name": self.name,
                "state": self.state.value,
                "interval": self.interval,
                "initial_sync": self.initial_sync.value,
                "ticks": self._ticks,
                "last_status": self.last_result.status.value if self.last_result else None,
                "last_finished_at": self.last_result.finished_at if self.last_result else None,
                "last_error": self.last_error,
            }

    def _record_error(self, message: str) -> None:
        with self._stats_lock:
            self.last_error = message

    def _loop(self) -> None:
        try:
            if self.initial_sync is InitialSync.BACKGROUND and not self._stop_event.is_set():
                self.tick()
            while not self._stop_event.wait(self.interval):
                self.tick()
        finally:
            self._finish()

    def _finish(self) -> None:
        self._lifecycle.force(LifecycleState.STOPPED)
        self._release_pool()
        self.logger.info("worker_stopped", ticks=self.ticks)

    def _release_pool(self) -> None:
        if self._owns_pool:
            self.pool.shutdown(wait=False)


__all__ = ["Worker"]
