"""Lock-guarded fetch/persist pipeline shared by every sync domain."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, TypeVar

import structlog

from ..cache import CacheStore
from ..cache.base import TTL
from ..errors import CacheFailure, FetchFailure, PersistFailure, ServiceDegraded
from ..logging_conf import component_logger
from ..models import RawObservation, SyncResult, SyncStatus

if TYPE_CHECKING:
    from ..sources.base import SourceClient

T = TypeVar("T")


class SyncService(ABC):
    """One data domain: fetch from upstream, persist, refresh the cache.

    ``sync`` is the scheduled tick and honours the fetch lock
    ``<domain>:last_fetch``; ``force_sync`` bypasses it and propagates
    failures to the caller. The lock is only written after a successful
    fetch, so a failed fetch is retried on the next tick.
    """

    domain: str

    def __init__(
        self,
        cache: CacheStore,
        client: "SourceClient",
        lock_ttl: TTL,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.cache = cache
        self.client = client
        self.lock_ttl = lock_ttl
        self.last_observation: RawObservation | None = None
        self.logger = logger or component_logger("sync").bind(domain=self.domain)

    @property
    def lock_key(self) -> str:
        return f"{self.domain}:last_fetch"

    # -- write path -------------------------------------------------------

    def is_locked(self) -> bool:
        try:
            return self.cache.exists(self.lock_key)
        except CacheFailure as exc:
            # an unreadable lock counts as absent
            self.logger.warning("lock_read_failed", error=str(exc))
            return False

    def sync(self) -> SyncResult:
        if self.is_locked():
            self.logger.debug("lock_held", key=self.lock_key)
            return SyncResult(domain=self.domain, status=SyncStatus.SKIPPED)
        return self._run(propagate=False)

    def force_sync(self) -> SyncResult:
        return self._run(propagate=True)

    def _run(self, propagate: bool) -> SyncResult:
        self.logger.info("sync_started")
        try:
            observation = RawObservation(payload=self.client.fetch(), source=self.client.name)
        except FetchFailure as exc:
            self.logger.warning("fetch_failed", error=str(exc))
            raise
        self.last_observation = observation

        records = self.transform(observation.payload)
        fetched = self.fetched_count(observation.payload)
        saved = 0
        persist_error: PersistFailure | None = None
        try:
            saved = self.persist(records)
        except PersistFailure as exc:
            persist_error = exc
            self.logger.error("persist_failed", error=str(exc), records=fetched)

        self._guard_cache_write("refresh", lambda: self.refresh_cache(records))
        self._guard_cache_write(
            "lock", lambda: self.cache.set(self.lock_key, "1", ttl=self.lock_ttl)
        )

        if persist_error is not None:
            if propagate:
                raise persist_error
            return SyncResult(
                domain=self.domain,
                status=SyncStatus.DEGRADED,
                fetched=fetched,
                error=str(persist_error),
            )
        self.logger.info("sync_completed", fetched=fetched, saved=saved)
        return SyncResult(domain=self.domain, fetched=fetched, saved=saved)

    def _guard_cache_write(self, what: str, action: Callable[[], None]) -> None:
        try:
            action()
        except CacheFailure as exc:
            self.logger.warning("cache_write_failed", stage=what, error=str(exc))

    def fetched_count(self, raw: Any) -> int:
        return len(raw) if isinstance(raw, list) else 1

    @abstractmethod
    def transform(self, raw: Any) -> Any:
        """Turn the raw upstream payload into domain records."""

    @abstractmethod
    def persist(self, records: Any) -> int:
        """Write records to the repository and return how many were saved."""

    @abstractmethod
    def refresh_cache(self, records: Any) -> None:
        """Project freshly fetched records into the cache."""

    # -- read path --------------------------------------------------------

    def cached_read(
        self,
        key: str,
        model: Any,
        ttl: TTL,
        loader: Callable[[], T],
        cache_empty: bool = False,
    ) -> T:
        """Cache-aside read: hit returns at once, miss loads from the repository.

        Reads never reach upstream. A repository failure raises
        :class:`ServiceDegraded`; an empty result is only cached when
        ``cache_empty`` is set.
        """

        hit = self.cache_get(key, model)
        if hit is not None and hit != []:
            return hit

        value = self.load(loader)
        if value or cache_empty:
            self._guard_cache_write("read", lambda: self.cache.set_json(key, value, ttl))
        return value

    def cache_get(self, key: str, model: Any) -> Any:
        """Read a typed cache entry; backend or decode failures count as a miss."""

        try:
            return self.cache.get_json(key, model)
        except CacheFailure as exc:
            self.logger.warning("cache_read_failed", key=key, error=str(exc))
            return None

    def load(self, loader: Callable[[], T]) -> T:
        try:
            return loader()
        except PersistFailure as exc:
            self.logger.error("read_failed", error=str(exc))
            raise ServiceDegraded(self.domain, str(exc)) from exc

    def close(self) -> None:
        self.client.close()


__all__ = ["SyncService"]
