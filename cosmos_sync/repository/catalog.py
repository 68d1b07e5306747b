"""Catalog datasets keyed by their upstream ``dataset_id``."""

from __future__ import annotations

import sqlite3
import uuid
from typing import Iterable, List, Optional

from ..infra.storage import from_db, to_db
from ..models import CatalogItem, utcnow
from .base import SQLiteRepository, clamp_page, dump_json, load_json

_COLUMNS = "id, dataset_id, title, status, updated_at, raw, created_at"

_UPSERT = """
INSERT INTO catalog_items(id, dataset_id, title, status, updated_at, raw, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(dataset_id) DO UPDATE SET
    title = excluded.title,
    status = excluded.status,
    updated_at = excluded.updated_at,
    raw = excluded.raw
"""


def _row_to_item(row: sqlite3.Row) -> CatalogItem:
    return CatalogItem(
        id=row["id"],
        dataset_id=row["dataset_id"],
        title=row["title"] or "",
        status=row["status"] or "",
        updated_at=from_db(row["updated_at"]),
        raw=load_json(row["raw"]),
        created_at=from_db(row["created_at"]),
    )


class CatalogRepository(SQLiteRepository):
    def create(self, item: CatalogItem) -> CatalogItem:
        item = item.model_copy(update={"id": item.id or str(uuid.uuid4())})
        with self._session() as conn:
            conn.execute(
                f"INSERT INTO catalog_items({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                self._params(item),
            )
        return item

    def upsert_many(self, items: Iterable[CatalogItem]) -> int:
        """Insert or update every item by ``dataset_id`` inside one transaction.

        Items without a dataset id are skipped. Existing rows keep their ``id``
        and ``created_at``; title, status, raw and updated_at are overwritten.
        Returns the number of rows written.
        """

        written = 0
        with self._transaction() as conn:
            for item in items:
                if not item.dataset_id or not item.dataset_id.strip():
                    continue
                candidate = item.model_copy(update={"id": item.id or str(uuid.uuid4())})
                conn.execute(_UPSERT, self._params(candidate))
                written += 1
        return written

    def get_by_id(self, item_id: str) -> Optional[CatalogItem]:
        with self._session() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM catalog_items WHERE id = ?", (item_id,)
            ).fetchone()
        return _row_to_item(row) if row else None

    def get_by_dataset_id(self, dataset_id: str) -> Optional[CatalogItem]:
        with self._session() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM catalog_items WHERE dataset_id = ?", (dataset_id,)
            ).fetchone()
        return _row_to_item(row) if row else None

    def paginated(self, page: int, limit: int) -> List[CatalogItem]:
        """Most recently updated first; rows without ``updated_at`` sort last."""

        page, limit = clamp_page(page, limit)
        with self._session() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM catalog_items "
                "ORDER BY updated_at IS NULL, updated_at DESC, created_at DESC "
                "LIMIT ? OFFSET ?",
                (limit, (page - 1) * limit),
            ).fetchall()
        return [_row_to_item(row) for row in rows]

    def search(self, query: str, limit: int = 10) -> List[CatalogItem]:
        if limit < 1 or limit > 50:
            limit = 10
        pattern = f"%{query}%"
        with self._session() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM catalog_items WHERE title LIKE ? OR dataset_id LIKE ? "
                "ORDER BY updated_at IS NULL, updated_at DESC LIMIT ?",
                (pattern, pattern, limit),
            ).fetchall()
        return [_row_to_item(row) for row in rows]

    def delete(self, item_id: str) -> bool:
        with self._session() as conn:
            cur = conn.execute("DELETE FROM catalog_items WHERE id = ?", (item_id,))
            return cur.rowcount > 0

    def count(self) -> int:
        with self._session() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM catalog_items").fetchone()[0])

    @staticmethod
    def _params(item: CatalogItem) -> tuple:
        return (
            item.id,
            item.dataset_id,
            item.title,
            item.status,
            to_db(item.updated_at),
            dump_json(item.raw),
            to_db(item.created_at or utcnow()),
        )


__all__ = ["CatalogRepository"]
