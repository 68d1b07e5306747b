from __future__ import annotations

import pytest
import redis

from cosmos_sync.cache import RedisCache, build_cache
from cosmos_sync.config import CacheConfig
from cosmos_sync.errors import CacheFailure


class StubRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.set_calls: list[tuple[str, str, int | None]] = []
        self.closed = False

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, px=None):
        self.set_calls.append((key, value, px))
        self.data[key] = str(value)
        return True

    def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0

    def exists(self, key):
        return 1 if key in self.data else 0

    def incr(self, key):
        value = int(self.data.get(key, "0")) + 1
        self.data[key] = str(value)
        return value

    def ping(self):
        return True

    def close(self):
        self.closed = True


class DownRedis:
    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise redis.exceptions.ConnectionError("connection refused")

        return _fail


def test_redis_cache_operations_and_ttl_in_milliseconds() -> None:
    client = StubRedis()
    cache = RedisCache(client)
    cache.set("position:last_fetch", "1", ttl=120)
    cache.set("persistent", "v")
    cache.set("tiny", "v", ttl=0.0001)
    assert client.set_calls[0] == ("position:last_fetch", "1", 120000)
    assert client.set_calls[1] == ("persistent", "v", None)
    assert client.set_calls[2][2] == 1
    assert cache.exists("position:last_fetch")
    assert cache.get("missing") is None
    assert cache.increment("gen") == 1
    cache.delete("persistent")
    assert not cache.exists("persistent")
    assert cache.ping()
    cache.close()
    assert client.closed


def test_redis_rejects_non_positive_ttl_before_calling_server() -> None:
    client = StubRedis()
    cache = RedisCache(client)
    with pytest.raises(ValueError):
        cache.set("k", "v", ttl=0)
    assert client.set_calls == []


@pytest.mark.parametrize(
    ("method", "args"),
    [
        ("get", ("k",)),
        ("set", ("k", "v", 10)),
        ("delete", ("k",)),
        ("exists", ("k",)),
        ("increment", ("k",)),
        ("ping", ()),
    ],
)
def test_redis_outage_surfaces_as_cache_failure(method: str, args: tuple) -> None:
    cache = RedisCache(DownRedis())
    with pytest.raises(CacheFailure):
        getattr(cache, method)(*args)


def test_build_cache_selects_redis_backend() -> None:
    cache = build_cache(CacheConfig(backend="redis", url="redis://localhost:6399/0", socket_timeout=0.1))
    assert isinstance(cache, RedisCache)
    cache.close()
