"""Error taxonomy shared by clients, repositories, services and workers."""

from __future__ import annotations


class CosmosSyncError(Exception):
    """Base class for every error raised by cosmos-sync."""


class FetchFailure(CosmosSyncError):
    """Upstream unreachable, non-2xx status or malformed body.

    Always treated as transient: the next scheduled tick retries.
    """

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class PersistFailure(CosmosSyncError):
    """Durable store unavailable or a constraint was violated."""


class CacheFailure(CosmosSyncError):
    """Cache backend unavailable or holding an undecodable value."""


class ConfigurationFailure(CosmosSyncError):
    """A required credential or URL is missing."""


class ServiceDegraded(CosmosSyncError):
    """A read could not be served from either cache or repository."""

    def __init__(self, domain: str, reason: str) -> None:
        super().__init__(f"{domain} degraded: {reason}")
        self.domain = domain
        self.reason = reason


class SchedulerStateError(CosmosSyncError, RuntimeError):
    """Operation not allowed in the scheduler's current lifecycle state."""


__all__ = [
    "CacheFailure",
    "ConfigurationFailure",
    "CosmosSyncError",
    "FetchFailure",
    "PersistFailure",
    "SchedulerStateError",
    "ServiceDegraded",
]
