"""Domain records persisted by the repositories and projected into the cache."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _Record(BaseModel):
    @field_validator("*", mode="after")
    @classmethod
    def _normalise_datetimes(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return ensure_utc(value)
        return value


class RawObservation(_Record):
    """Upstream document captured at fetch time, before it is transformed and persisted."""

    payload: Any
    fetched_at: datetime = Field(default_factory=utcnow)
    source: str


class PositionLog(_Record):
    """One positional telemetry reading as returned by the upstream tracker."""

    id: int | None = None
    fetched_at: datetime = Field(default_factory=utcnow)
    source_url: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)


class PositionTrend(_Record):
    """Movement derived from the two most recent positions. Never persisted."""

    movement: bool = False
    delta_km: float = 0.0
    dt_sec: float = 0.0
    velocity_kmh: float | None = None
    from_time: datetime | None = None
    to_time: datetime | None = None
    from_lat: float | None = None
    from_lon: float | None = None
    to_lat: float | None = None
    to_lon: float | None = None


class CatalogItem(_Record):
    """Catalog dataset keyed by its upstream ``dataset_id``."""

    id: str | None = None
    dataset_id: str
    title: str = ""
    status: str = ""
    updated_at: datetime | None = None
    raw: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)


class TelemetrySample(_Record):
    id: int | None = None
    recorded_at: datetime
    voltage: float
    temperature: float
    source_file: str
    created_at: datetime = Field(default_factory=utcnow)


class TelemetryStats(BaseModel):
    count: int = 0
    avg_voltage: float = 0.0
    avg_temperature: float = 0.0
    min_voltage: float = 0.0
    max_voltage: float = 0.0
    min_temperature: float = 0.0
    max_temperature: float = 0.0


class FeedSnapshot(_Record):
    """Durable copy of one feed document (APOD, NEO, JWST, ...)."""

    id: int | None = None
    source: str
    fetched_at: datetime = Field(default_factory=utcnow)
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)


class SyncStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    DEGRADED = "degraded"


class SyncResult(_Record):
    """Outcome of one synchronization invocation."""

    domain: str
    status: SyncStatus = SyncStatus.SUCCESS
    fetched: int = 0
    saved: int = 0
    error: str | None = None
    finished_at: datetime = Field(default_factory=utcnow)


__all__ = [
    "CatalogItem",
    "FeedSnapshot",
    "PositionLog",
    "PositionTrend",
    "RawObservation",
    "SyncResult",
    "SyncStatus",
    "TelemetrySample",
    "TelemetryStats",
    "ensure_utc",
    "utcnow",
]
