"""Infra layer utilities (durable storage)."""

from .storage import SQLiteManager, from_db, to_db

__all__ = ["SQLiteManager", "from_db", "to_db"]
