"""Configuration loading helpers for cosmos-sync."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml

from .models import AppConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_FILENAME = "config.yaml"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("COSMOS_SYNC_HOME")
        if self.project_root is not None:
            root = Path(self.project_root).resolve()
        elif env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = Path(__file__).resolve().parents[2]
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        """Return the existing config file (yaml, yml or json), defaulting to config.yaml."""

        stem = Path(CONFIG_FILENAME).stem
        for extension in CONFIG_EXTENSIONS:
            candidate = self.data_dir / f"{stem}{extension}"
            if candidate.exists():
                return candidate
        return self.data_dir / CONFIG_FILENAME


# Environment variable -> (section, field). Secrets are never written back to disk.
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "REDIS_URL": ("cache", "url"),
    "CACHE_BACKEND": ("cache", "backend"),
    "DATABASE_PATH": ("database", "path"),
    "POSITION_URL": ("position", "url"),
    "CATALOG_URL": ("catalog", "url"),
    "NASA_API_KEY": ("catalog", "api_key"),
    "SHUTDOWN_TIMEOUT": ("scheduler", "shutdown_timeout"),
}

FEED_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "NASA_API_KEY": ("apod|neo|donki", "api_key"),
    "JWST_API_KEY": ("jwst", "api_key"),
    "JWST_EMAIL": ("jwst", "email"),
    "ASTRO_APP_ID": ("astro", "api_key"),
    "ASTRO_APP_SECRET": ("astro", "api_secret"),
}


def apply_env_overrides(config: AppConfig, environ: Mapping[str, str] | None = None) -> AppConfig:
    """Return a copy of ``config`` with non-empty environment overrides applied."""

    env = os.environ if environ is None else environ
    payload = config.model_dump(mode="json")
    for variable, (section, field) in ENV_OVERRIDES.items():
        value = env.get(variable)
        if value:
            payload[section][field] = value
    for variable, (feed_names, field) in FEED_ENV_OVERRIDES.items():
        value = env.get(variable)
        if not value:
            continue
        targets = set(feed_names.split("|"))
        for feed in payload["feeds"]:
            if feed["name"] in targets:
                feed[field] = value
    return AppConfig.model_validate(payload)


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: AppConfig | None = None

    def load(self, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Load (or create) the config file and apply environment overrides."""

        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        if path.exists():
            payload = _read_file(path)
            config = AppConfig.model_validate(payload)
        else:
            config = AppConfig()
            self.save(config)
        config = apply_env_overrides(config, environ)
        self._cache = config
        return config

    def save(self, config: AppConfig) -> Path:
        path = self.locator.config_path()
        payload = config.model_dump(mode="json")
        _write_file(path, payload)
        self._cache = None
        return path

    def reload(self, environ: Mapping[str, str] | None = None) -> AppConfig:
        self._cache = None
        return self.load(environ)

    @property
    def base_dir(self) -> Path:
        return self.locator.project_root  # type: ignore[return-value]


__all__ = [
    "CONFIG_EXTENSIONS",
    "ConfigLocator",
    "ConfigRepository",
    "apply_env_overrides",
]
