# src/tracking/scan_log_store.py — v1
"""Append-only SQLite storage for scan log rows."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

from scavy.storage.database import Database
from scavy.tracking.models import ScanLog, StageTimings

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS scan_logs (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    user_id TEXT,
    fingerprint TEXT,
    device_name TEXT,
    tier TEXT NOT NULL CHECK (tier IN ('cache', 'database', 'ai')),
    stage TEXT NOT NULL DEFAULT 'full',
    stage_timings TEXT NOT NULL DEFAULT '{}',
    total_ms REAL NOT NULL DEFAULT 0,
    success INTEGER NOT NULL DEFAULT 1,
    error_kind TEXT,
    error_message TEXT,
    provider TEXT,
    model TEXT,
    input_tokens INTEGER NOT NULL DEFAULT 0,
    output_tokens INTEGER NOT NULL DEFAULT 0,
    cost_usd REAL NOT NULL DEFAULT 0 CHECK (cost_usd >= 0),
    cost_saved_usd REAL NOT NULL DEFAULT 0,
    component_count INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_scan_logs_created ON scan_logs(created_at);
CREATE INDEX IF NOT EXISTS idx_scan_logs_user ON scan_logs(user_id, created_at);
"""


class ScanLogStore:
    """Insert and query scan log rows."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._db.ensure_schema(_SCHEMA)

    async def append(self, log: ScanLog) -> None:
        self._db.execute(
            """INSERT INTO scan_logs
               (id, created_at, user_id, fingerprint, device_name, tier, stage,
                stage_timings, total_ms, success, error_kind, error_message, provider,
                model, input_tokens, output_tokens, cost_usd, cost_saved_usd, component_count)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                log.id,
                log.created_at.isoformat(),
                log.user_id,
                log.fingerprint,
                log.device_name,
                log.tier,
                log.stage,
                log.stage_timings.model_dump_json(),
                log.stage_timings.total,
                int(log.success),
                log.error_kind,
                log.error_message,
                log.provider,
                log.model,
                log.input_tokens,
                log.output_tokens,
                log.cost_usd,
                log.cost_saved_usd,
                log.component_count,
            ),
        )

    async def list_since(self, since: datetime | None = None, limit: int | None = None) -> list[ScanLog]:
        """Rows created at or after ``since`` (all rows when None), oldest first."""
        sql = "SELECT * FROM scan_logs"
        params: list[object] = []
        if since is not None:
            sql += " WHERE created_at >= ?"
            params.append(since.isoformat())
        sql += " ORDER BY created_at"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [_row_to_log(r) for r in self._db.fetchall(sql, tuple(params))]

    async def count(self) -> int:
        return self._db.fetchone("SELECT COUNT(*) AS n FROM scan_logs")["n"]


def _row_to_log(row: sqlite3.Row) -> ScanLog:
    return ScanLog(
        id=row["id"],
        created_at=datetime.fromisoformat(row["created_at"]),
        user_id=row["user_id"],
        fingerprint=row["fingerprint"],
        device_name=row["device_name"],
        tier=row["tier"],
        stage=row["stage"],
        stage_timings=StageTimings.model_validate_json(row["stage_timings"]),
        success=bool(row["success"]),
        error_kind=row["error_kind"],
        error_message=row["error_message"],
        provider=row["provider"],
        model=row["model"],
        input_tokens=row["input_tokens"],
        output_tokens=row["output_tokens"],
        cost_usd=row["cost_usd"],
        cost_saved_usd=row["cost_saved_usd"],
        component_count=row["component_count"],
    )
