"""Bulk dataset catalog: upsert by ``dataset_id``, generation-keyed list cache."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List, Optional

import structlog

from ..cache import CacheStore
from ..cache.base import TTL
from ..errors import CacheFailure
from ..models import CatalogItem
from ..repository import CatalogRepository, clamp_page
from .base import SyncService
from .extract import FieldSpec, PayloadSchema

GENERATION_KEY = "catalog:list:generation"
LIST_TTL = timedelta(minutes=5)
ITEM_TTL = timedelta(minutes=5)

CATALOG_SCHEMA = PayloadSchema(
    name="catalog_items",
    fields=(
        FieldSpec("dataset_id", ("dataset_id", "id", "uuid"), required=True),
        FieldSpec("title", ("title", "name", "label")),
        FieldSpec("status", ("status", "state", "lifecycle")),
        FieldSpec("updated_at", ("updated_at", "modified", "lastUpdated", "timestamp"), kind="timestamp"),
    ),
)


class CatalogService(SyncService):
    domain = "catalog"

    def __init__(
        self,
        cache: CacheStore,
        client: Any,
        repository: CatalogRepository,
        lock_ttl: TTL = 600,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        super().__init__(cache, client, lock_ttl, logger)
        self.repository = repository

    def transform(self, raw: List[Dict[str, Any]]) -> List[CatalogItem]:
        items: List[CatalogItem] = []
        skipped = 0
        for document in raw:
            matched = CATALOG_SCHEMA.match_item(document) if isinstance(document, dict) else None
            if matched is None:
                skipped += 1
                continue
            items.append(CatalogItem(raw=document, **matched))
        if skipped:
            self.logger.info("records_skipped", skipped=skipped, reason="missing dataset_id")
        return items

    def persist(self, records: List[CatalogItem]) -> int:
        return self.repository.upsert_many(records)

    def refresh_cache(self, records: List[CatalogItem]) -> None:
        # a new generation orphans every cached page at once
        self.cache.increment(GENERATION_KEY)
        for item in records:
            self.cache.delete(self._item_key(item.dataset_id))

    def _generation(self) -> str:
        try:
            return self.cache.get(GENERATION_KEY) or "0"
        except CacheFailure as exc:
            self.logger.warning("cache_read_failed", key=GENERATION_KEY, error=str(exc))
            return "0"

    @staticmethod
    def _item_key(dataset_id: str) -> str:
        return f"catalog:item:{dataset_id}"

    def get_list(self, page: int = 1, limit: int = 20) -> List[CatalogItem]:
        page, limit = clamp_page(page, limit)
        key = f"catalog:list:{self._generation()}:{page}:{limit}"
        return self.cached_read(key, List[CatalogItem], LIST_TTL, lambda: self.repository.paginated(page, limit))

    def get_item(self, dataset_id: str) -> Optional[CatalogItem]:
        return self.cached_read(
            self._item_key(dataset_id),
            CatalogItem,
            ITEM_TTL,
            lambda: self.repository.get_by_dataset_id(dataset_id),
        )

    def get_latest(self) -> Optional[CatalogItem]:
        items = self.get_list(1, 20)
        return items[0] if items else None

    def search(self, query: str, limit: int = 10) -> List[CatalogItem]:
        return self.load(lambda: self.repository.search(query, limit))

    def count(self) -> int:
        return self.load(self.repository.count)


__all__ = ["CATALOG_SCHEMA", "CatalogService", "GENERATION_KEY"]
