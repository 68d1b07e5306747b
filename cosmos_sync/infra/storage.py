"""SQLite connection management and schema guarantees for the durable store."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Dict, Iterator, Tuple

from ..errors import PersistFailure
from ..models import ensure_utc

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS position_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        fetched_at TEXT NOT NULL,
        source_url TEXT NOT NULL,
        payload TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_position_logs_fetched_at ON position_logs(fetched_at)",
    """
    CREATE TABLE IF NOT EXISTS catalog_items (
        id TEXT PRIMARY KEY,
        dataset_id TEXT NOT NULL UNIQUE,
        title TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT '',
        updated_at TEXT,
        raw TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_catalog_items_updated_at ON catalog_items(updated_at)",
    """
    CREATE TABLE IF NOT EXISTS telemetry_samples (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        recorded_at TEXT NOT NULL,
        voltage REAL NOT NULL,
        temperature REAL NOT NULL,
        source_file TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_telemetry_samples_recorded_at ON telemetry_samples(recorded_at)",
    """
    CREATE TABLE IF NOT EXISTS feed_snapshots (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source TEXT NOT NULL,
        fetched_at TEXT NOT NULL,
        payload TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_feed_snapshots_source ON feed_snapshots(source, fetched_at)",
)


def to_db(value: datetime | None) -> str | None:
    """Encode a datetime as fixed-width UTC ISO text so string order is time order."""

    if value is None:
        return None
    return ensure_utc(value).isoformat(timespec="microseconds")


def from_db(value: str | None) -> datetime | None:
    if value is None:
        return None
    return ensure_utc(datetime.fromisoformat(value))


class SQLiteManager:
    """Manage SQLite connections with basic schema guarantees.

    One connection per database path is shared across threads; every access
    goes through :meth:`session` or :meth:`transaction`, which serialise on a
    per-path lock.
    """

    def __init__(self) -> None:
        self._connections: Dict[Path, Tuple[sqlite3.Connection, RLock]] = {}
        self._lock = RLock()

    def connect(self, path: Path) -> sqlite3.Connection:
        return self._entry(path)[0]

    @contextmanager
    def session(self, path: Path) -> Iterator[sqlite3.Connection]:
        """Serialised access for reads and single statements."""

        conn, lock = self._entry(path)
        with lock:
            try:
                yield conn
            except sqlite3.Error as exc:
                raise PersistFailure(str(exc)) from exc

    @contextmanager
    def transaction(self, path: Path) -> Iterator[sqlite3.Connection]:
        """All-or-nothing unit of work: commit on success, roll back on any error."""

        conn, lock = self._entry(path)
        with lock:
            try:
                conn.execute("BEGIN")
                yield conn
            except BaseException as exc:
                conn.rollback()
                if isinstance(exc, sqlite3.Error):
                    raise PersistFailure(str(exc)) from exc
                raise
            else:
                try:
                    conn.commit()
                except sqlite3.Error as exc:
                    conn.rollback()
                    raise PersistFailure(str(exc)) from exc

    def _entry(self, path: Path) -> Tuple[sqlite3.Connection, RLock]:
        with self._lock:
            if path not in self._connections:
                path.parent.mkdir(parents=True, exist_ok=True)
                try:
                    # isolation_level=None: transactions are explicit via BEGIN/COMMIT.
                    conn = sqlite3.connect(path, check_same_thread=False, isolation_level=None)
                    conn.row_factory = sqlite3.Row
                    self._ensure_schema(conn)
                except sqlite3.Error as exc:
                    raise PersistFailure(f"cannot open {path}: {exc}") from exc
                self._connections[path] = (conn, RLock())
            return self._connections[path]

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        for statement in SCHEMA:
            conn.execute(statement)

    def reset(self, path: Path) -> None:
        with self._lock:
            if path in self._connections:
                self._connections[path][0].close()
                del self._connections[path]
        if path.exists():
            path.unlink()

    def close_all(self) -> None:
        with self._lock:
            for conn, _ in self._connections.values():
                conn.close()
            self._connections.clear()


__all__ = ["SCHEMA", "SQLiteManager", "from_db", "to_db"]
