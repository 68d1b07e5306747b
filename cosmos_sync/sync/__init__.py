"""Synchronization services, one per data domain."""

from .base import SyncService
from .catalog import CatalogService
from .feed import FeedService
from .position import PositionService
from .telemetry import TelemetryService

__all__ = ["CatalogService", "FeedService", "PositionService", "SyncService", "TelemetryService"]
