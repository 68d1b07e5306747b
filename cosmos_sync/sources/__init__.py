"""Upstream source clients."""

from .base import JsonSourceClient, SourceClient
from .catalog import CatalogClient
from .feed import FeedClient
from .position import PositionClient
from .telemetry import SyntheticTelemetrySource

__all__ = [
    "CatalogClient",
    "FeedClient",
    "JsonSourceClient",
    "PositionClient",
    "SourceClient",
    "SyntheticTelemetrySource",
]
