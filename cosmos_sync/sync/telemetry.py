"""Telemetry batches: generated, stored immutably, served newest first."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, List, Tuple

import structlog

from ..cache import CacheStore
from ..cache.base import TTL
from ..models import TelemetrySample, TelemetryStats, utcnow
from ..repository import TelemetryRepository
from .base import SyncService

LATEST_KEY = "telemetry:latest"
LATEST_TTL = timedelta(seconds=60)
LATEST_DEPTH = 100
DEFAULT_WINDOW = timedelta(hours=24)
MAX_WINDOW = timedelta(days=30)


def history_window(start: datetime | None, end: datetime | None) -> Tuple[datetime, datetime]:
    """Default to the last 24h and never reach more than 30 days before ``end``."""

    end = end or utcnow()
    start = start or end - DEFAULT_WINDOW
    if end - start > MAX_WINDOW:
        start = end - MAX_WINDOW
    return start, end


class TelemetryService(SyncService):
    domain = "telemetry"

    def __init__(
        self,
        cache: CacheStore,
        client: Any,
        repository: TelemetryRepository,
        lock_ttl: TTL = 300,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        super().__init__(cache, client, lock_ttl, logger)
        self.repository = repository

    def transform(self, raw: List[TelemetrySample]) -> List[TelemetrySample]:
        return [TelemetrySample.model_validate(sample) for sample in raw]

    def persist(self, records: List[TelemetrySample]) -> int:
        return self.repository.create_many(records)

    def refresh_cache(self, records: List[TelemetrySample]) -> None:
        newest = sorted(records, key=lambda sample: sample.recorded_at, reverse=True)
        self.cache.set_json(LATEST_KEY, newest[:LATEST_DEPTH], LATEST_TTL)

    def get_latest(self, limit: int = LATEST_DEPTH) -> List[TelemetrySample]:
        if limit < 1 or limit > 1000:
            limit = LATEST_DEPTH
        if limit > LATEST_DEPTH:
            return self.load(lambda: self.repository.get_latest(limit))
        samples = self.cached_read(
            LATEST_KEY,
            List[TelemetrySample],
            LATEST_TTL,
            lambda: self.repository.get_latest(LATEST_DEPTH),
        )
        return samples[:limit]

    def get_history(self, start: datetime | None = None, end: datetime | None = None) -> List[TelemetrySample]:
        start, end = history_window(start, end)
        return self.load(lambda: self.repository.get_range(start, end))

    def stats(self, start: datetime | None = None, end: datetime | None = None) -> TelemetryStats:
        start, end = history_window(start, end)
        return self.load(lambda: self.repository.stats(start, end))


__all__ = ["TelemetryService", "history_window"]
