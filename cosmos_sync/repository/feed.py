"""Durable feed snapshots (APOD, NEO, JWST, ...)."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import List, Optional

from ..infra.storage import from_db, to_db
from ..models import FeedSnapshot, utcnow
from .base import SQLiteRepository, dump_json, load_json

_COLUMNS = "id, source, fetched_at, payload, created_at"


def _row_to_snapshot(row: sqlite3.Row) -> FeedSnapshot:
    return FeedSnapshot(
        id=row["id"],
        source=row["source"],
        fetched_at=from_db(row["fetched_at"]),
        payload=load_json(row["payload"]),
        created_at=from_db(row["created_at"]),
    )


class FeedRepository(SQLiteRepository):
    def create(self, snapshot: FeedSnapshot) -> FeedSnapshot:
        with self._session() as conn:
            cur = conn.execute(
                "INSERT INTO feed_snapshots(source, fetched_at, payload, created_at) VALUES (?, ?, ?, ?)",
                (
                    snapshot.source,
                    to_db(snapshot.fetched_at),
                    dump_json(snapshot.payload),
                    to_db(snapshot.created_at or utcnow()),
                ),
            )
            row_id = cur.lastrowid
        return snapshot.model_copy(update={"id": row_id})

    def get_latest(self, source: str) -> Optional[FeedSnapshot]:
        with self._session() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM feed_snapshots WHERE source = ? ORDER BY fetched_at DESC, id DESC LIMIT 1",
                (source,),
            ).fetchone()
        return _row_to_snapshot(row) if row else None

    def get_by_source(self, source: str, limit: int = 10) -> List[FeedSnapshot]:
        if limit < 1 or limit > 100:
            limit = 10
        with self._session() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM feed_snapshots WHERE source = ? ORDER BY fetched_at DESC, id DESC LIMIT ?",
                (source, limit),
            ).fetchall()
        return [_row_to_snapshot(row) for row in rows]

    def get_range(self, source: str, start: datetime, end: datetime) -> List[FeedSnapshot]:
        with self._session() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM feed_snapshots WHERE source = ? AND fetched_at >= ? AND fetched_at <= ? "
                "ORDER BY fetched_at DESC, id DESC",
                (source, to_db(start), to_db(end)),
            ).fetchall()
        return [_row_to_snapshot(row) for row in rows]

    def delete_older_than(self, cutoff: datetime) -> int:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM feed_snapshots WHERE fetched_at < ?", (to_db(cutoff),))
            return cur.rowcount

    def delete_by_source(self, source: str) -> int:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM feed_snapshots WHERE source = ?", (source,))
            return cur.rowcount


__all__ = ["FeedRepository"]
