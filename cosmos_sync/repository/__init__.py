"""SQLite-backed repositories, one per entity."""

from .base import SQLiteRepository, clamp_page
from .catalog import CatalogRepository
from .feed import FeedRepository
from .position import PositionRepository
from .telemetry import TelemetryRepository

__all__ = [
    "CatalogRepository",
    "FeedRepository",
    "PositionRepository",
    "SQLiteRepository",
    "TelemetryRepository",
    "clamp_page",
]
