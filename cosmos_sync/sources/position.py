"""Positional telemetry source (orbital tracker)."""

from __future__ import annotations

from typing import Any, Dict

import httpx

from ..config import PositionSourceConfig
from ..errors import FetchFailure
from ..models import utcnow
from .base import JsonSourceClient, SourceClient


class PositionClient(SourceClient):
    name = "position"

    def __init__(self, config: PositionSourceConfig, transport: httpx.BaseTransport | None = None) -> None:
        self.config = config
        self._http = JsonSourceClient(self.name, config.url, timeout=config.timeout, transport=transport)

    @property
    def url(self) -> str:
        return self.config.url

    def fetch(self) -> Dict[str, Any]:
        data = self._http.get_json()
        if not isinstance(data, dict):
            raise FetchFailure(self.name, f"expected an object, got {type(data).__name__}")
        data["fetched_at"] = utcnow().isoformat()
        return data

    def close(self) -> None:
        self._http.close()


__all__ = ["PositionClient"]
