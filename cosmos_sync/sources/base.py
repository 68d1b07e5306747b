"""Thin JSON-over-HTTP clients shared by every upstream source."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict

import httpx
import structlog

from .. import __version__
from ..errors import ConfigurationFailure, FetchFailure
from ..logging_conf import component_logger

DEFAULT_HEADERS = {
    "User-Agent": f"cosmos-sync/{__version__}",
    "Accept": "application/json",
}


class SourceClient(ABC):
    """One upstream integration: ``fetch`` returns a raw document or raises FetchFailure."""

    name: str

    @abstractmethod
    def fetch(self) -> Any:
        """Return the raw upstream payload."""

    def close(self) -> None:
        """Release transport resources."""


def require_url(name: str, url: str | None) -> str:
    """Return ``url`` when it is an absolute http(s) URL, else raise ConfigurationFailure."""

    try:
        parsed = httpx.URL(url or "")
    except (httpx.InvalidURL, TypeError) as exc:
        raise ConfigurationFailure(f"{name}: invalid url {url!r}: {exc}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigurationFailure(f"{name}: url must be an absolute http(s) URL, got {url!r}")
    return str(url)


class JsonSourceClient:
    """Wrap an ``httpx.Client`` and normalise every failure into :class:`FetchFailure`."""

    def __init__(
        self,
        name: str,
        url: str,
        timeout: float = 30.0,
        headers: Dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
        auth: tuple[str, str] | None = None,
    ) -> None:
        self.name = name
        self.url = require_url(name, url)
        self.logger = logger or component_logger("sources").bind(source=name)
        self._client = httpx.Client(
            follow_redirects=True,
            timeout=timeout,
            headers={**DEFAULT_HEADERS, **(headers or {})},
            transport=transport,
            auth=auth,
        )

    def get_json(
        self,
        params: Dict[str, Any] | None = None,
        headers: Dict[str, str] | None = None,
    ) -> Any:
        try:
            response = self._client.get(self.url, params=params or None, headers=headers)
        except httpx.HTTPError as exc:
            self.logger.warning("fetch_transport_error", url=self.url, error=str(exc))
            raise FetchFailure(self.name, f"transport error: {exc}") from exc
        if not response.is_success:
            body = response.text[:200]
            raise FetchFailure(self.name, f"status {response.status_code}: {body}")
        try:
            return response.json()
        except ValueError as exc:
            raise FetchFailure(self.name, f"malformed JSON: {exc}") from exc

    def close(self) -> None:
        self._client.close()


__all__ = ["DEFAULT_HEADERS", "JsonSourceClient", "SourceClient", "require_url"]
