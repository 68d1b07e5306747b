from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from cosmos_sync.config import (
    AppConfig,
    DatabaseConfig,
    FeedSourceConfig,
    InitialSync,
    RetentionConfig,
    TelemetrySourceConfig,
    WorkerConfig,
)


def test_default_config_covers_every_domain() -> None:
    config = AppConfig()
    assert config.domains == ["position", "catalog", "telemetry", "apod", "neo", "jwst", "donki", "astro"]
    assert config.worker("position").initial_sync is InitialSync.BACKGROUND
    assert config.worker("jwst").initial_sync is InitialSync.DEFERRED
    assert config.worker("unknown") == WorkerConfig()
    assert config.feed("jwst").requires_api_key is True
    assert config.feed("neo").date_window_days == 7
    assert config.feed("donki").date_params == ("startDate", "endDate")
    assert config.feed("astro").auth == "basic"
    assert config.worker("astro").initial_sync is InitialSync.DEFERRED
    with pytest.raises(KeyError):
        config.feed("mars")


def test_worker_config_accepts_timedelta_and_rejects_non_positive() -> None:
    worker = WorkerConfig(interval=timedelta(minutes=2), timeout="15")
    assert worker.interval == 120.0
    assert worker.timeout == 15.0
    with pytest.raises(ValidationError):
        WorkerConfig(interval=0)
    with pytest.raises(ValidationError):
        WorkerConfig(timeout=-1)


def test_feed_names_must_be_unique_and_not_builtin() -> None:
    feed = {"name": "apod", "url": "https://api.nasa.test/apod"}
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"feeds": [feed, feed]})
    with pytest.raises(ValidationError):
        AppConfig.model_validate({"feeds": [{"name": "catalog", "url": "https://x.test"}]})
    with pytest.raises(ValidationError):
        FeedSourceConfig(name="  ", url="https://x.test")
    with pytest.raises(ValidationError):
        FeedSourceConfig(name="apod", url="https://x.test", cache_ttl=0)


def test_retention_requires_a_trigger_and_positive_windows() -> None:
    assert RetentionConfig(cron=None, interval=3600).interval == 3600
    with pytest.raises(ValidationError):
        RetentionConfig(cron=None, interval=None)
    with pytest.raises(ValidationError):
        RetentionConfig(telemetry_days=0)


def test_database_path_resolution(tmp_path: Path) -> None:
    relative = DatabaseConfig(path="data/cosmos.db")
    assert relative.resolved_path(tmp_path) == (tmp_path / "data" / "cosmos.db").resolve()
    absolute = DatabaseConfig(path=tmp_path / "elsewhere.db")
    assert absolute.resolved_path(Path("/ignored")) == tmp_path / "elsewhere.db"


def test_telemetry_batch_size_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        TelemetrySourceConfig(batch_size=0)


@pytest.mark.parametrize("days, expected", [(5, 5), (30, 30), (0, 5), (31, 5), (-3, 5)])
def test_feed_date_window_outside_range_falls_back_to_default(days, expected) -> None:
    config = FeedSourceConfig(
        name="donki",
        url="https://api.nasa.test/DONKI/FLR",
        date_window_days=days,
        date_window_default=5,
    )
    assert config.date_window_days == expected


def test_feed_credentials_depend_on_auth_mode() -> None:
    assert FeedSourceConfig(name="apod", url="https://x.test", api_key="k").has_credentials
    basic = FeedSourceConfig(name="astro", url="https://x.test", auth="basic", api_key="app-id")
    assert not basic.has_credentials
    assert basic.model_copy(update={"api_secret": "s3cret"}).has_credentials
    with pytest.raises(ValidationError):
        FeedSourceConfig(name="astro", url="https://x.test", date_window_default=0)
