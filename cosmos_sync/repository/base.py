"""Shared plumbing for the SQLite repositories."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..infra.storage import SQLiteManager


def clamp_page(page: int, limit: int, default_limit: int = 20, max_limit: int = 100) -> tuple[int, int]:
    """Normalise pagination input: page < 1 becomes 1, out-of-range limits fall back."""

    if page < 1:
        page = 1
    if limit < 1 or limit > max_limit:
        limit = default_limit
    return page, limit


def dump_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def load_json(value: str | None) -> Any:
    if not value:
        return {}
    return json.loads(value)


class SQLiteRepository:
    """Base for repositories sharing one :class:`SQLiteManager` connection."""

    def __init__(self, manager: SQLiteManager, db_path: Path) -> None:
        self.manager = manager
        self.db_path = db_path
        # open eagerly so schema errors surface at construction
        self.manager.connect(db_path)

    def _session(self):
        return self.manager.session(self.db_path)

    def _transaction(self):
        return self.manager.transaction(self.db_path)


__all__ = ["SQLiteRepository", "clamp_page", "dump_json", "load_json"]
