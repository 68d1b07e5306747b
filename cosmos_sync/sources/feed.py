"""Generic feed source (APOD, NEO, JWST, DONKI, astronomy events) driven by FeedSourceConfig."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict

import httpx

from ..config import FeedSourceConfig
from ..errors import ConfigurationFailure, FetchFailure
from ..models import utcnow
from .base import JsonSourceClient, SourceClient


class FeedClient(SourceClient):
    def __init__(self, config: FeedSourceConfig, transport: httpx.BaseTransport | None = None) -> None:
        if config.requires_api_key and not config.has_credentials:
            raise ConfigurationFailure(f"feed '{config.name}' requires an API key")
        self.config = config
        self.name = config.name
        self._http = JsonSourceClient(
            config.name,
            config.url,
            timeout=config.timeout,
            headers=self._headers(),
            transport=transport,
            auth=self._auth(),
        )

    def _auth(self) -> tuple[str, str] | None:
        if self.config.auth == "basic" and self.config.has_credentials:
            return (self.config.api_key, self.config.api_secret)
        return None

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.config.auth == "key" and self.config.api_key and self.config.api_key_header:
            headers[self.config.api_key_header] = self.config.api_key
        if self.config.email:
            headers["email"] = self.config.email
        return headers

    def params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = dict(self.config.params)
        if self.config.auth == "key" and self.config.api_key and self.config.api_key_param:
            params[self.config.api_key_param] = self.config.api_key
        if self.config.date_window_days:
            today = utcnow().date()
            span = timedelta(days=self.config.date_window_days)
            start, end = (today, today + span) if self.config.date_window_forward else (today - span, today)
            start_param, end_param = self.config.date_params
            params[start_param] = start.isoformat()
            params[end_param] = end.isoformat()
        return params

    def fetch(self) -> Dict[str, Any]:
        data = self._http.get_json(params=self.params())
        if isinstance(data, list):
            # keep snapshots uniformly shaped as objects
            return {"items": data}
        if not isinstance(data, dict):
            raise FetchFailure(self.name, f"expected an object, got {type(data).__name__}")
        return data

    def close(self) -> None:
        self._http.close()


__all__ = ["FeedClient"]
