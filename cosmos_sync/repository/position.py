"""Persistence for positional telemetry readings."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import List, Optional

from ..infra.storage import from_db, to_db
from ..models import PositionLog, utcnow
from .base import SQLiteRepository, clamp_page, dump_json, load_json

_COLUMNS = "id, fetched_at, source_url, payload, created_at"


def _row_to_log(row: sqlite3.Row) -> PositionLog:
    return PositionLog(
        id=row["id"],
        fetched_at=from_db(row["fetched_at"]),
        source_url=row["source_url"],
        payload=load_json(row["payload"]),
        created_at=from_db(row["created_at"]),
    )


class PositionRepository(SQLiteRepository):
    """Append-only log of position documents ordered by ``fetched_at``."""

    def create(self, log: PositionLog) -> PositionLog:
        created_at = log.created_at or utcnow()
        with self._session() as conn:
            cur = conn.execute(
                "INSERT INTO position_logs(fetched_at, source_url, payload, created_at) VALUES (?, ?, ?, ?)",
                (to_db(log.fetched_at), log.source_url, dump_json(log.payload), to_db(created_at)),
            )
            row_id = cur.lastrowid
        return log.model_copy(update={"id": row_id, "created_at": created_at})

    def get_by_id(self, log_id: int) -> Optional[PositionLog]:
        with self._session() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM position_logs WHERE id = ?", (log_id,)
            ).fetchone()
        return _row_to_log(row) if row else None

    def get_last(self) -> Optional[PositionLog]:
        logs = self.get_last_n(1)
        return logs[0] if logs else None

    def get_last_n(self, n: int) -> List[PositionLog]:
        if n < 1:
            return []
        with self._session() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM position_logs ORDER BY fetched_at DESC, id DESC LIMIT ?",
                (n,),
            ).fetchall()
        return [_row_to_log(row) for row in rows]

    def get_since(self, since: datetime) -> List[PositionLog]:
        with self._session() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM position_logs WHERE fetched_at >= ? ORDER BY fetched_at DESC, id DESC",
                (to_db(since),),
            ).fetchall()
        return [_row_to_log(row) for row in rows]

    def get_range(self, start: datetime, end: datetime) -> List[PositionLog]:
        with self._session() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM position_logs WHERE fetched_at >= ? AND fetched_at <= ? "
                "ORDER BY fetched_at DESC, id DESC",
                (to_db(start), to_db(end)),
            ).fetchall()
        return [_row_to_log(row) for row in rows]

    def paginated(self, page: int, limit: int) -> List[PositionLog]:
        page, limit = clamp_page(page, limit)
        with self._session() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM position_logs ORDER BY fetched_at DESC, id DESC LIMIT ? OFFSET ?",
                (limit, (page - 1) * limit),
            ).fetchall()
        return [_row_to_log(row) for row in rows]

    def count(self) -> int:
        with self._session() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM position_logs").fetchone()[0])

    def delete_older_than(self, cutoff: datetime) -> int:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM position_logs WHERE fetched_at < ?", (to_db(cutoff),))
            return cur.rowcount


__all__ = ["PositionRepository"]
