"""In-process cache backend with TTL."""

from __future__ import annotations

import heapq
import time
from threading import Lock
from typing import Callable, Dict, List, Tuple

from .base import TTL, CacheStore, normalise_ttl


class MemoryCache(CacheStore):
    """Thread-safe dict cache.

    Expired entries are evicted on access, and every write also drops the
    entries whose deadline has passed, so keys that are never read again
    do not accumulate.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float | None]] = {}
        self._deadlines: List[Tuple[float, str]] = []
        self._lock = Lock()

    def size(self) -> int:
        """Number of stored entries, including expired ones not yet purged."""

        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._live_value(key)

    def set(self, key: str, value: str | bytes | int | float, ttl: TTL = None) -> None:
        seconds = normalise_ttl(ttl)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            expires_at = now + seconds if seconds is not None else None
            self._entries[key] = (str(value), expires_at)
            if expires_at is not None:
                heapq.heappush(self._deadlines, (expires_at, key))

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live_value(key) is not None

    def increment(self, key: str) -> int:
        with self._lock:
            self._purge_expired(self._clock())
            current = self._live_value(key)
            _, expires_at = self._entries.get(key, ("0", None))
            try:
                value = int(current or 0) + 1
            except ValueError as exc:
                raise ValueError(f"value under {key} is not an integer") from exc
            self._entries[key] = (str(value), expires_at if current is not None else None)
            return value

    def ttl(self, key: str) -> float | None:
        """Seconds left before ``key`` expires; None when absent or persistent."""

        with self._lock:
            if self._live_value(key) is None:
                return None
            _, expires_at = self._entries[key]
            if expires_at is None:
                return None
            return max(0.0, expires_at - self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._deadlines.clear()

    def _purge_expired(self, now: float) -> None:
        # heap entries can be stale after an overwrite or delete; only drop
        # a key whose stored deadline is the one being popped
        while self._deadlines and self._deadlines[0][0] <= now:
            expires_at, key = heapq.heappop(self._deadlines)
            entry = self._entries.get(key)
            if entry is not None and entry[1] == expires_at:
                del self._entries[key]

    def _live_value(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            return None
        return value


__all__ = ["MemoryCache"]
