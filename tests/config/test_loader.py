from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from cosmos_sync.config import AppConfig, ConfigLocator, ConfigRepository, apply_env_overrides


def test_config_locator_uses_env_and_creates_directories(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COSMOS_SYNC_HOME", str(tmp_path))
    locator = ConfigLocator()
    assert locator.project_root == tmp_path.resolve()
    assert locator.data_dir == tmp_path.resolve() / "data"
    assert locator.logs_dir == tmp_path.resolve() / "logs"
    for path in (locator.data_dir, locator.logs_dir):
        assert path.exists()
    assert locator.config_path().name == "config.yaml"


def test_explicit_project_root_wins_over_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COSMOS_SYNC_HOME", str(tmp_path / "elsewhere"))
    locator = ConfigLocator(project_root=tmp_path)
    assert locator.project_root == tmp_path.resolve()


def test_load_writes_defaults_on_first_run(temp_config_repository: ConfigRepository) -> None:
    config = temp_config_repository.load({})
    path = temp_config_repository.locator.config_path()
    assert path.exists()
    on_disk = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert on_disk["cache"]["backend"] == "memory"
    assert [feed["name"] for feed in on_disk["feeds"]] == ["apod", "neo", "jwst", "donki", "astro"]
    assert config == AppConfig()


def test_repository_roundtrip_and_reload(temp_config_repository: ConfigRepository) -> None:
    config = AppConfig.model_validate({"scheduler": {"shutdown_timeout": 4}, "telemetry": {"batch_size": 10}})
    temp_config_repository.save(config)
    loaded = temp_config_repository.load({})
    assert loaded.scheduler.shutdown_timeout == 4
    assert temp_config_repository.load({}) is loaded

    config = loaded.model_copy(update={"telemetry": loaded.telemetry.model_copy(update={"batch_size": 25})})
    temp_config_repository.save(config)
    assert temp_config_repository.reload({}).telemetry.batch_size == 25


def test_json_config_file_is_picked_up(tmp_path: Path) -> None:
    locator = ConfigLocator(project_root=tmp_path)
    (locator.data_dir / "config.json").write_text(
        json.dumps({"cache": {"backend": "redis", "url": "redis://cache:6379/2"}}), encoding="utf-8"
    )
    config = ConfigRepository(locator).load({})
    assert config.cache.backend == "redis"
    assert config.cache.url == "redis://cache:6379/2"


def test_non_mapping_config_is_rejected(tmp_path: Path) -> None:
    locator = ConfigLocator(project_root=tmp_path)
    locator.config_path().write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        ConfigRepository(locator).load({})


def test_env_overrides_apply_without_touching_disk(temp_config_repository: ConfigRepository) -> None:
    environ = {
        "REDIS_URL": "redis://redis:6379/1",
        "CACHE_BACKEND": "redis",
        "NASA_API_KEY": "nasa-key",
        "JWST_API_KEY": "jwst-key",
        "JWST_EMAIL": "ops@example.test",
        "ASTRO_APP_ID": "astro-id",
        "ASTRO_APP_SECRET": "astro-secret",
        "SHUTDOWN_TIMEOUT": "3.5",
        "POSITION_URL": "",
    }
    config = temp_config_repository.load(environ)
    assert config.cache.backend == "redis"
    assert config.cache.url == "redis://redis:6379/1"
    assert config.catalog.api_key == "nasa-key"
    assert config.feed("apod").api_key == "nasa-key"
    assert config.feed("neo").api_key == "nasa-key"
    assert config.feed("donki").api_key == "nasa-key"
    assert config.feed("astro").api_key == "astro-id"
    assert config.feed("astro").api_secret == "astro-secret"
    assert config.feed("jwst").api_key == "jwst-key"
    assert config.feed("jwst").email == "ops@example.test"
    assert config.scheduler.shutdown_timeout == 3.5
    assert config.position.url == AppConfig().position.url

    on_disk = temp_config_repository.locator.config_path().read_text(encoding="utf-8")
    assert "jwst-key" not in on_disk
    assert "nasa-key" not in on_disk
    assert "astro-secret" not in on_disk


def test_apply_env_overrides_returns_copy() -> None:
    config = AppConfig()
    updated = apply_env_overrides(config, {"CATALOG_URL": "https://catalog.test/items"})
    assert updated.catalog.url == "https://catalog.test/items"
    assert config.catalog.url != updated.catalog.url
