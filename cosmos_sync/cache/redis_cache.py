"""Redis cache backend."""

from __future__ import annotations

from typing import Any

import redis

from ..errors import CacheFailure
from .base import TTL, CacheStore, normalise_ttl


class RedisCache(CacheStore):
    """Cache backed by a Redis server; every redis error surfaces as CacheFailure."""

    def __init__(self, client: Any) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 2.0) -> "RedisCache":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    def get(self, key: str) -> str | None:
        try:
            value = self.client.get(key)
        except redis.exceptions.RedisError as exc:
            raise CacheFailure(f"get {key}: {exc}") from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str | bytes | int | float, ttl: TTL = None) -> None:
        seconds = normalise_ttl(ttl)
        # px keeps sub-second TTLs exact; redis rejects px=0 so round up.
        px = max(1, int(seconds * 1000)) if seconds is not None else None
        try:
            self.client.set(key, value, px=px)
        except redis.exceptions.RedisError as exc:
            raise CacheFailure(f"set {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.exceptions.RedisError as exc:
            raise CacheFailure(f"delete {key}: {exc}") from exc

    def exists(self, key: str) -> bool:
        try:
            return bool(self.client.exists(key))
        except redis.exceptions.RedisError as exc:
            raise CacheFailure(f"exists {key}: {exc}") from exc

    def increment(self, key: str) -> int:
        try:
            return int(self.client.incr(key))
        except redis.exceptions.RedisError as exc:
            raise CacheFailure(f"incr {key}: {exc}") from exc

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.exceptions.RedisError as exc:
            raise CacheFailure(f"ping: {exc}") from exc

    def close(self) -> None:
        self.client.close()


__all__ = ["RedisCache"]
