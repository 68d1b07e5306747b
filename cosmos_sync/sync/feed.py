"""Feed snapshots (APOD, NEO, JWST, DONKI, astronomy events) with declared item schemas."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import structlog

from ..cache import CacheStore
from ..cache.base import TTL
from ..config import FeedSourceConfig
from ..models import FeedSnapshot, utcnow
from ..repository import FeedRepository
from .base import SyncService
from .extract import FieldSpec, PayloadSchema

DEFAULT_WINDOW = timedelta(hours=24)


def _finalize_jwst(item: Dict[str, Any]) -> Dict[str, Any]:
    item["instruments"] = [name.upper() for name in item["instruments"]]
    if not item["link"]:
        item["link"] = item["url"]
    parts = []
    if item["obs_id"]:
        parts.append(item["obs_id"])
    if item["program"]:
        parts.append(f"P{item['program']}")
    if item["suffix"]:
        parts.append(item["suffix"])
    if item["instruments"]:
        parts.append("/".join(item["instruments"]))
    item["caption"] = " · ".join(parts)
    return item


def _finalize_event(item: Dict[str, Any]) -> Dict[str, Any]:
    item["when"] = item["when"].isoformat()
    return item


SCHEMAS: Dict[str, PayloadSchema] = {
    "jwst_images": PayloadSchema(
        name="jwst_images",
        items_path="body",
        fields=(
            FieldSpec(
                "url",
                ("thumbnail", "thumbnailUrl", "image", "img", "url", "href", "s3_url", "file_url"),
                required=True,
                suffixes=(".jpg", ".jpeg", ".png"),
            ),
            FieldSpec("obs_id", ("observation_id", "observationId", "id")),
            FieldSpec("program", ("program",)),
            FieldSpec("suffix", ("details.suffix",)),
            FieldSpec("instruments", ("details.instruments",), kind="list", item_key="instrument"),
            FieldSpec("link", ("location", "url", "href")),
        ),
        finalize=_finalize_jwst,
    ),
    "astro_events": PayloadSchema(
        name="astro_events",
        items_path="data.table.rows[].cells",
        fields=(
            FieldSpec("name", ("name", "body", "object", "target"), required=True),
            FieldSpec("type", ("type", "event_type", "category", "kind"), required=True),
            FieldSpec(
                "when",
                ("time", "date", "occursAt", "peak", "instant", "eventHighlights.peak.date"),
                kind="timestamp",
                required=True,
            ),
            FieldSpec("magnitude", ("magnitude", "mag"), kind="float"),
            FieldSpec("altitude", ("altitude", "eventHighlights.peak.altitude"), kind="float"),
            FieldSpec("details", ("note", "description")),
        ),
        finalize=_finalize_event,
    ),
    "donki_events": PayloadSchema(
        name="donki_events",
        items_path="items",
        fields=(
            FieldSpec("id", ("flrID", "activityID", "gstID", "sepID", "messageID"), required=True),
            FieldSpec("type", ("classType", "messageType", "type")),
            FieldSpec(
                "when",
                ("peakTime", "beginTime", "startTime", "eventTime", "messageIssueTime"),
                kind="timestamp",
                required=True,
            ),
            FieldSpec("region", ("sourceLocation",)),
            FieldSpec("instruments", ("instruments",), kind="list", item_key="displayName"),
            FieldSpec("link", ("link", "messageURL")),
            FieldSpec("details", ("note", "messageBody")),
        ),
        finalize=_finalize_event,
    ),
}


def schema_for(config: FeedSourceConfig) -> Optional[PayloadSchema]:
    """Resolve the feed's declared schema; ``items_path`` in config overrides the default."""

    if not config.schema_name:
        return None
    try:
        schema = SCHEMAS[config.schema_name]
    except KeyError:
        raise KeyError(f"unknown payload schema '{config.schema_name}' for feed '{config.name}'") from None
    if config.items_path:
        schema = dataclasses.replace(schema, items_path=config.items_path)
    return schema


class FeedService(SyncService):
    """One instance per configured feed; the feed name is the domain."""

    def __init__(
        self,
        cache: CacheStore,
        client: Any,
        repository: FeedRepository,
        config: FeedSourceConfig,
        lock_ttl: TTL = 3600,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.domain = config.name
        super().__init__(cache, client, lock_ttl, logger)
        self.repository = repository
        self.config = config
        self.schema = schema_for(config)

    @property
    def latest_key(self) -> str:
        return f"{self.domain}:latest"

    def transform(self, raw: Dict[str, Any]) -> FeedSnapshot:
        return FeedSnapshot(source=self.domain, fetched_at=utcnow(), payload=raw)

    def persist(self, records: FeedSnapshot) -> int:
        self.repository.create(records)
        return 1

    def refresh_cache(self, records: FeedSnapshot) -> None:
        self.cache.set_json(self.latest_key, records, self.config.cache_ttl)

    def get_latest(self) -> Optional[FeedSnapshot]:
        return self.cached_read(
            self.latest_key,
            FeedSnapshot,
            self.config.cache_ttl,
            lambda: self.repository.get_latest(self.domain),
        )

    def get_history(self, start: datetime | None = None, end: datetime | None = None) -> List[FeedSnapshot]:
        end = end or utcnow()
        start = start or end - DEFAULT_WINDOW
        return self.load(lambda: self.repository.get_range(self.domain, start, end))

    def get_items(self) -> List[Dict[str, Any]]:
        """Items matched from the latest snapshot by the feed's declared schema."""

        if self.schema is None:
            return []
        snapshot = self.get_latest()
        if snapshot is None:
            return []
        return self.schema.match(snapshot.payload)


__all__ = ["FeedService", "SCHEMAS", "schema_for"]
