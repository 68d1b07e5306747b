"""Shared fixtures: fake clock, in-memory cache, temp SQLite store and stub sources."""

from __future__ import annotations

import os
import tempfile
from collections import deque
from pathlib import Path
from typing import Any, Iterable, Iterator

import pytest

from cosmos_sync.cache import MemoryCache
from cosmos_sync.config import ConfigLocator, ConfigRepository
from cosmos_sync.errors import FetchFailure
from cosmos_sync.infra import SQLiteManager
from cosmos_sync.repository import CatalogRepository, FeedRepository, PositionRepository, TelemetryRepository


def pytest_configure(config: pytest.Config) -> None:  # pragma: no cover
    # keep log files produced during the run out of the working tree
    if "COSMOS_SYNC_HOME" not in os.environ:
        os.environ["COSMOS_SYNC_HOME"] = tempfile.mkdtemp(prefix="cosmos-sync-tests-")


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubClient:
    """Source client returning queued payloads; exceptions in the queue are raised."""

    def __init__(self, payloads: Iterable[Any] = (), name: str = "stub", url: str = "https://example.test/stub") -> None:
        self.name = name
        self.url = url
        self._payloads = deque(payloads)
        self.calls = 0
        self.closed = False

    def push(self, payload: Any) -> None:
        self._payloads.append(payload)

    def fetch(self) -> Any:
        self.calls += 1
        if not self._payloads:
            raise FetchFailure(self.name, "no payload queued")
        payload = self._payloads.popleft() if len(self._payloads) > 1 else self._payloads[0]
        if isinstance(payload, Exception):
            raise payload
        return payload

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> MemoryCache:
    return MemoryCache(clock=clock)


@pytest.fixture
def storage() -> Iterator[SQLiteManager]:
    manager = SQLiteManager()
    yield manager
    manager.close_all()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "cosmos_sync.db"


@pytest.fixture
def position_repo(storage: SQLiteManager, db_path: Path) -> PositionRepository:
    return PositionRepository(storage, db_path)


@pytest.fixture
def catalog_repo(storage: SQLiteManager, db_path: Path) -> CatalogRepository:
    return CatalogRepository(storage, db_path)


@pytest.fixture
def telemetry_repo(storage: SQLiteManager, db_path: Path) -> TelemetryRepository:
    return TelemetryRepository(storage, db_path)


@pytest.fixture
def feed_repo(storage: SQLiteManager, db_path: Path) -> FeedRepository:
    return FeedRepository(storage, db_path)


@pytest.fixture
def stub_client() -> type[StubClient]:
    return StubClient


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> ConfigRepository:
    return ConfigRepository(ConfigLocator(project_root=tmp_path))
