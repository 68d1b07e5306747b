"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, apply_env_overrides
from .models import (
    AppConfig,
    CacheConfig,
    CatalogSourceConfig,
    DatabaseConfig,
    FeedSourceConfig,
    InitialSync,
    PositionSourceConfig,
    RetentionConfig,
    SchedulerConfig,
    TelemetrySourceConfig,
    WorkerConfig,
)

__all__ = [
    "AppConfig",
    "CacheConfig",
    "CatalogSourceConfig",
    "ConfigLocator",
    "ConfigRepository",
    "DatabaseConfig",
    "FeedSourceConfig",
    "InitialSync",
    "PositionSourceConfig",
    "RetentionConfig",
    "SchedulerConfig",
    "TelemetrySourceConfig",
    "WorkerConfig",
    "apply_env_overrides",
]
