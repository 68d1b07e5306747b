"""Bulk dataset catalog source."""

from __future__ import annotations

from typing import Any, Dict, List

import httpx

from ..config import CatalogSourceConfig
from ..sync.extract import resolve_path
from .base import JsonSourceClient, SourceClient


class CatalogClient(SourceClient):
    """Return the catalog's item list found at the configured ``items_path``."""

    name = "catalog"

    def __init__(self, config: CatalogSourceConfig, transport: httpx.BaseTransport | None = None) -> None:
        self.config = config
        self._http = JsonSourceClient(self.name, config.url, timeout=config.timeout, transport=transport)

    def fetch(self) -> List[Dict[str, Any]]:
        params = {"api_key": self.config.api_key} if self.config.api_key else None
        data = self._http.get_json(params=params)
        if isinstance(data, list):
            items = data
        else:
            items = resolve_path(data, self.config.items_path)
            if not isinstance(items, list):
                # a single document without the declared list is one item
                items = [data] if isinstance(data, dict) else []
        return [item for item in items if isinstance(item, dict)]

    def close(self) -> None:
        self._http.close()


__all__ = ["CatalogClient"]
