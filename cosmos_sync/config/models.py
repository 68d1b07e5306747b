"""Pydantic models used across cosmos-sync configuration flow."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class InitialSync(str, Enum):
    """When a worker performs its first invocation."""

    BLOCKING = "blocking"  # inside start(), before the loop thread exists
    BACKGROUND = "background"  # first action of the loop thread
    DEFERRED = "deferred"  # after the first interval elapses


class CacheConfig(BaseModel):
    """Cache-aside backend selection."""

    backend: Literal["memory", "redis"] = "memory"
    url: str = "redis://localhost:6379/0"
    socket_timeout: float = 2.0


class DatabaseConfig(BaseModel):
    path: Path = Field(default=Path("data/cosmos_sync.db"))

    @field_validator("path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    def resolved_path(self, base_dir: Path) -> Path:
        if not self.path.is_absolute():
            return (base_dir / self.path).resolve()
        return self.path


class WorkerConfig(BaseModel):
    """Per-domain worker cadence."""

    enabled: bool = True
    interval: float = 300.0
    initial_sync: InitialSync = InitialSync.BLOCKING
    timeout: float = 30.0

    @field_validator("interval", "timeout", mode="before")
    @classmethod
    def _coerce_seconds(cls, value: Any) -> float:
        if isinstance(value, timedelta):
            value = value.total_seconds()
        seconds = float(value)
        if seconds <= 0:
            raise ValueError("interval and timeout must be positive seconds")
        return seconds


class PositionSourceConfig(BaseModel):
    url: str = "https://api.wheretheiss.at/v1/satellites/25544"
    timeout: float = 10.0


class CatalogSourceConfig(BaseModel):
    url: str = "https://osdr.nasa.gov/osdr/data/osd/files/87.1"
    api_key: str = ""
    items_path: str = "items"
    timeout: float = 30.0
    lock_ttl: float = 600.0


MAX_WINDOW_DAYS = 30


class FeedSourceConfig(BaseModel):
    """One feed endpoint; ``schema_name`` selects a declared item schema."""

    name: str
    url: str
    params: dict[str, str] = Field(default_factory=dict)
    api_key: str = ""
    # "basic" sends api_key:api_secret as HTTP basic credentials
    auth: Literal["key", "basic"] = "key"
    api_secret: str = ""
    api_key_param: str | None = "api_key"
    api_key_header: str | None = None
    requires_api_key: bool = False
    email: str = ""
    cache_ttl: float = 3600.0
    timeout: float = 30.0
    items_path: str | None = None
    schema_name: str | None = None
    # query params covering the last N days (or the next N when date_window_forward)
    date_window_days: int | None = None
    date_window_default: int = 7
    date_window_forward: bool = False
    date_params: tuple[str, str] = ("start_date", "end_date")

    @model_validator(mode="after")
    def _validate_name(self) -> "FeedSourceConfig":
        if not self.name.strip():
            raise ValueError("feed name cannot be empty")
        if self.cache_ttl <= 0:
            raise ValueError("cache_ttl must be positive")
        if not 1 <= self.date_window_default <= MAX_WINDOW_DAYS:
            raise ValueError(f"date_window_default must be within 1..{MAX_WINDOW_DAYS}")
        if self.date_window_days is not None and not 1 <= self.date_window_days <= MAX_WINDOW_DAYS:
            self.date_window_days = self.date_window_default
        return self

    @property
    def has_credentials(self) -> bool:
        if self.auth == "basic":
            return bool(self.api_key and self.api_secret)
        return bool(self.api_key)


class TelemetrySourceConfig(BaseModel):
    batch_size: int = 100

    @field_validator("batch_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("batch_size must be >= 1")
        return value


class RetentionConfig(BaseModel):
    """Retention sweep for immutable history tables."""

    enabled: bool = True
    telemetry_days: int = 30
    history_days: int = 7
    cron: str | None = "0 3 * * *"
    interval: float | None = None

    @model_validator(mode="after")
    def _validate_trigger(self) -> "RetentionConfig":
        if self.cron is None and self.interval is None:
            raise ValueError("retention requires either cron or interval")
        if self.telemetry_days < 1 or self.history_days < 1:
            raise ValueError("retention windows must be at least one day")
        return self


class SchedulerConfig(BaseModel):
    shutdown_timeout: float = 10.0


def _default_feeds() -> list[FeedSourceConfig]:
    return [
        FeedSourceConfig(
            name="apod",
            url="https://api.nasa.gov/planetary/apod",
            params={"thumbs": "true"},
            cache_ttl=24 * 3600,
        ),
        FeedSourceConfig(
            name="neo",
            url="https://api.nasa.gov/neo/rest/v1/feed",
            cache_ttl=2 * 3600,
            date_window_days=7,
        ),
        FeedSourceConfig(
            name="jwst",
            url="https://api.jwstapi.com/all/type/jpg",
            params={"page": "1", "perPage": "24"},
            api_key_param=None,
            api_key_header="x-api-key",
            requires_api_key=True,
            cache_ttl=15 * 60,
            timeout=20.0,
            items_path="body",
            schema_name="jwst_images",
        ),
        FeedSourceConfig(
            name="donki",
            url="https://api.nasa.gov/DONKI/FLR",
            cache_ttl=3600,
            date_window_days=5,
            date_window_default=5,
            date_params=("startDate", "endDate"),
            items_path="items",
            schema_name="donki_events",
        ),
        FeedSourceConfig(
            name="astro",
            url="https://api.astronomyapi.com/api/v2/bodies/events",
            params={"latitude": "55.7558", "longitude": "37.6176"},
            auth="basic",
            api_key_param=None,
            requires_api_key=True,
            cache_ttl=6 * 3600,
            timeout=25.0,
            date_window_days=7,
            date_window_forward=True,
            date_params=("from", "to"),
            items_path="data.table.rows[].cells",
            schema_name="astro_events",
        ),
    ]


def _default_workers() -> dict[str, WorkerConfig]:
    return {
        "position": WorkerConfig(interval=120, initial_sync=InitialSync.BACKGROUND),
        "catalog": WorkerConfig(interval=3600, timeout=60),
        "telemetry": WorkerConfig(interval=300),
        "apod": WorkerConfig(interval=3600, timeout=60),
        "neo": WorkerConfig(interval=3600, timeout=60),
        "jwst": WorkerConfig(interval=900, initial_sync=InitialSync.DEFERRED, timeout=20),
        "donki": WorkerConfig(interval=3600, timeout=30),
        "astro": WorkerConfig(interval=6 * 3600, initial_sync=InitialSync.DEFERRED, timeout=25),
    }


class AppConfig(BaseModel):
    """Top-level configuration shared by bootstrap, workers and CLI."""

    cache: CacheConfig = Field(default_factory=CacheConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    position: PositionSourceConfig = Field(default_factory=PositionSourceConfig)
    catalog: CatalogSourceConfig = Field(default_factory=CatalogSourceConfig)
    telemetry: TelemetrySourceConfig = Field(default_factory=TelemetrySourceConfig)
    feeds: list[FeedSourceConfig] = Field(default_factory=_default_feeds)
    workers: dict[str, WorkerConfig] = Field(default_factory=_default_workers)

    @model_validator(mode="after")
    def _validate_feeds(self) -> "AppConfig":
        names = [feed.name for feed in self.feeds]
        if len(names) != len(set(names)):
            raise ValueError("feed names must be unique")
        reserved = {"position", "catalog", "telemetry"} & set(names)
        if reserved:
            raise ValueError(f"feed names clash with built-in domains: {sorted(reserved)}")
        return self

    def worker(self, domain: str) -> WorkerConfig:
        """Return the worker settings for ``domain`` (defaults when unset)."""

        return self.workers.get(domain) or WorkerConfig()

    def feed(self, name: str) -> FeedSourceConfig:
        for feed in self.feeds:
            if feed.name == name:
                return feed
        raise KeyError(name)

    @property
    def domains(self) -> list[str]:
        return ["position", "catalog", "telemetry", *(feed.name for feed in self.feeds)]


__all__ = [
    "AppConfig",
    "CacheConfig",
    "CatalogSourceConfig",
    "DatabaseConfig",
    "FeedSourceConfig",
    "InitialSync",
    "MAX_WINDOW_DAYS",
    "PositionSourceConfig",
    "RetentionConfig",
    "SchedulerConfig",
    "TelemetrySourceConfig",
    "WorkerConfig",
]
