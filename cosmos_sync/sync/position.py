"""Positional telemetry: one document per tick, trend and history reads."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import structlog

from ..cache import CacheStore
from ..cache.base import TTL
from ..models import PositionLog, PositionTrend, utcnow
from ..repository import PositionRepository, clamp_page
from .base import SyncService
from .geo import compute_trend

LAST_POSITION_KEY = "position:last_position"
LAST_POSITION_TTL = timedelta(minutes=2)
LIST_TTL = timedelta(seconds=30)
TREND_TTL = timedelta(seconds=30)
HISTORY_TTL = timedelta(minutes=5)
DEFAULT_TREND_LIMIT = 240
DEFAULT_HISTORY_WINDOW = timedelta(hours=24)


class PositionService(SyncService):
    domain = "position"

    def __init__(
        self,
        cache: CacheStore,
        client: Any,
        repository: PositionRepository,
        lock_ttl: TTL = 120,
        source_url: str | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        super().__init__(cache, client, lock_ttl, logger)
        self.repository = repository
        self.source_url = source_url or getattr(client, "url", self.domain)

    def transform(self, raw: Dict[str, Any]) -> PositionLog:
        return PositionLog(fetched_at=utcnow(), source_url=self.source_url, payload=raw)

    def persist(self, records: PositionLog) -> int:
        self.repository.create(records)
        return 1

    def refresh_cache(self, records: PositionLog) -> None:
        self.cache.set_json(LAST_POSITION_KEY, records, LAST_POSITION_TTL)

    def get_latest(self) -> Optional[PositionLog]:
        return self.cached_read(LAST_POSITION_KEY, PositionLog, LAST_POSITION_TTL, self.repository.get_last)

    def get_list(self, page: int = 1, limit: int = 20) -> List[PositionLog]:
        page, limit = clamp_page(page, limit)
        return self.cached_read(
            f"position:list:{page}:{limit}",
            List[PositionLog],
            LIST_TTL,
            lambda: self.repository.paginated(page, limit),
        )

    def get_trend(self, limit: int = DEFAULT_TREND_LIMIT) -> PositionTrend:
        """Movement between the two newest samples; neutral with fewer than two."""

        if limit <= 0:
            limit = DEFAULT_TREND_LIMIT
        key = f"position:trend:{limit}"
        hit = self.cache_get(key, PositionTrend)
        if hit is not None:
            return hit
        logs = self.load(lambda: self.repository.get_last_n(2))
        trend = compute_trend(logs)
        if len(logs) >= 2:
            self._guard_cache_write("read", lambda: self.cache.set_json(key, trend, TREND_TTL))
        return trend

    def get_history(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        window: timedelta = DEFAULT_HISTORY_WINDOW,
    ) -> List[PositionLog]:
        """Positions in ``[start, end]``, newest first; defaults to the last ``window``."""

        if start is None and end is None:
            # rolling window: one key regardless of the current instant
            key = f"position:history:last:{int(window.total_seconds())}"
            end = utcnow()
            start = end - window
        else:
            end = end or utcnow()
            start = start or end - window
            key = f"position:history:{start.isoformat()}:{end.isoformat()}"
        return self.cached_read(
            key,
            List[PositionLog],
            HISTORY_TTL,
            lambda: self.repository.get_range(start, end),
        )


__all__ = ["PositionService"]
