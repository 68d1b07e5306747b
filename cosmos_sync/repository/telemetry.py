"""Telemetry samples: immutable once written, removed only by retention."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Iterable, List

from ..infra.storage import from_db, to_db
from ..models import TelemetrySample, TelemetryStats, utcnow
from .base import SQLiteRepository

_COLUMNS = "id, recorded_at, voltage, temperature, source_file, created_at"
_INSERT = (
    "INSERT INTO telemetry_samples(recorded_at, voltage, temperature, source_file, created_at) "
    "VALUES (?, ?, ?, ?, ?)"
)


def _row_to_sample(row: sqlite3.Row) -> TelemetrySample:
    return TelemetrySample(
        id=row["id"],
        recorded_at=from_db(row["recorded_at"]),
        voltage=row["voltage"],
        temperature=row["temperature"],
        source_file=row["source_file"],
        created_at=from_db(row["created_at"]),
    )


def _params(sample: TelemetrySample) -> tuple:
    return (
        to_db(sample.recorded_at),
        sample.voltage,
        sample.temperature,
        sample.source_file,
        to_db(sample.created_at or utcnow()),
    )


class TelemetryRepository(SQLiteRepository):
    def create(self, sample: TelemetrySample) -> TelemetrySample:
        with self._session() as conn:
            cur = conn.execute(_INSERT, _params(sample))
            row_id = cur.lastrowid
        return sample.model_copy(update={"id": row_id})

    def create_many(self, samples: Iterable[TelemetrySample]) -> int:
        """Insert a whole batch in one transaction; nothing is written on failure."""

        rows = [_params(sample) for sample in samples]
        if not rows:
            return 0
        with self._transaction() as conn:
            conn.executemany(_INSERT, rows)
        return len(rows)

    def get_range(self, start: datetime, end: datetime) -> List[TelemetrySample]:
        with self._session() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM telemetry_samples WHERE recorded_at >= ? AND recorded_at <= ? "
                "ORDER BY recorded_at DESC, id DESC",
                (to_db(start), to_db(end)),
            ).fetchall()
        return [_row_to_sample(row) for row in rows]

    def get_latest(self, limit: int = 100) -> List[TelemetrySample]:
        if limit < 1 or limit > 1000:
            limit = 100
        with self._session() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM telemetry_samples ORDER BY recorded_at DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [_row_to_sample(row) for row in rows]

    def stats(self, start: datetime, end: datetime) -> TelemetryStats:
        with self._session() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS count, AVG(voltage) AS avg_voltage, AVG(temperature) AS avg_temperature, "
                "MIN(voltage) AS min_voltage, MAX(voltage) AS max_voltage, "
                "MIN(temperature) AS min_temperature, MAX(temperature) AS max_temperature "
                "FROM telemetry_samples WHERE recorded_at >= ? AND recorded_at <= ?",
                (to_db(start), to_db(end)),
            ).fetchone()
        if not row or not row["count"]:
            return TelemetryStats()
        return TelemetryStats(**{key: row[key] for key in row.keys()})

    def count(self) -> int:
        with self._session() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM telemetry_samples").fetchone()[0])

    def delete_older_than(self, cutoff: datetime) -> int:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM telemetry_samples WHERE recorded_at < ?", (to_db(cutoff),))
            return cur.rowcount


__all__ = ["TelemetryRepository"]
