"""Cache-aside store contract shared by every backend."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any

from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_json

from ..errors import CacheFailure

TTL = float | int | timedelta | None


def normalise_ttl(ttl: TTL) -> float | None:
    """Return TTL in seconds; ``None`` means no expiration.

    Zero or negative TTLs are rejected in every backend.
    """

    if ttl is None:
        return None
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
    if seconds <= 0:
        raise ValueError(f"TTL must be positive, got {seconds!r}")
    return seconds


class CacheStore(ABC):
    """Key/value store with TTL.

    ``get`` returns ``None`` for a missing key; an unavailable backend raises
    :class:`CacheFailure` instead.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored string or ``None`` when absent."""

    @abstractmethod
    def set(self, key: str, value: str | bytes | int | float, ttl: TTL = None) -> None:
        """Store ``value`` under ``key``; last writer wins."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Return True if ``key`` is present and not expired."""

    @abstractmethod
    def increment(self, key: str) -> int:
        """Atomically increment an integer counter and return the new value."""

    def close(self) -> None:
        """Release backend resources."""

    def get_json(self, key: str, model: Any = None) -> Any:
        """Return the decoded value, validated against ``model`` when given."""

        raw = self.get(key)
        if raw is None:
            return None
        try:
            if model is None:
                return json.loads(raw)
            return TypeAdapter(model).validate_json(raw)
        except (ValueError, ValidationError) as exc:
            raise CacheFailure(f"undecodable value under {key}: {exc}") from exc

    def set_json(self, key: str, value: Any, ttl: TTL = None) -> None:
        try:
            payload = to_json(value).decode("utf-8")
        except (TypeError, ValueError) as exc:
            raise CacheFailure(f"unserialisable value for {key}: {exc}") from exc
        self.set(key, payload, ttl)


__all__ = ["CacheStore", "TTL", "normalise_ttl"]
