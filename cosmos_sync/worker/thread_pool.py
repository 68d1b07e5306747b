"""Executors isolated per worker so invocations never share a thread."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Dict, List


class ThreadPoolManager:
    """Hand out one named executor per worker and shut them all down together."""

    def __init__(self, default_workers: int = 1) -> None:
        self.default_workers = default_workers
        self._executors: Dict[str, ThreadPoolExecutor] = {}
        self._lock = Lock()
        self._closed = False

    def get(self, name: str, max_workers: int | None = None) -> ThreadPoolExecutor:
        with self._lock:
            if self._closed:
                raise RuntimeError("thread pool manager is shut down")
            if name not in self._executors:
                self._executors[name] = ThreadPoolExecutor(
                    max_workers=max_workers or self.default_workers,
                    thread_name_prefix=f"sync-{name}",
                )
            return self._executors[name]

    @property
    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._executors)

    def shutdown(self, wait: bool = False, cancel_futures: bool = True) -> None:
        """Stop accepting work; queued invocations are dropped, running ones finish on their own."""

        with self._lock:
            self._closed = True
            executors = list(self._executors.values())
            self._executors.clear()
        for executor in executors:
            executor.shutdown(wait=wait, cancel_futures=cancel_futures)


__all__ = ["ThreadPoolManager"]
