# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3 through the shared Database. The fingerprint is the
primary key, so concurrent writers race on ``INSERT OR IGNORE``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from scavy.cache.base_cache_store import BaseCacheStore
from scavy.cache.models import CacheEntry
from scavy.core.models import IdentificationResult
from scavy.storage.database import Database

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS scan_cache (
    fingerprint TEXT PRIMARY KEY,
    result TEXT NOT NULL,
    created_at TEXT NOT NULL,
    expires_at TEXT,
    hit_count INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_scan_cache_expires ON scan_cache(expires_at);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed result cache."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._db.ensure_schema(_SCHEMA)

    async def get(self, fingerprint: str) -> CacheEntry | None:
        row = self._db.fetchone(
            "SELECT * FROM scan_cache WHERE fingerprint = ?", (fingerprint,)
        )
        if row is None:
            return None
        try:
            entry = CacheEntry(
                fingerprint=row["fingerprint"],
                result=IdentificationResult.model_validate_json(row["result"]),
                created_at=datetime.fromisoformat(row["created_at"]),
                expires_at=(
                    datetime.fromisoformat(row["expires_at"]) if row["expires_at"] else None
                ),
                hit_count=row["hit_count"],
            )
        except Exception as e:
            logger.warning("Failed to deserialize cache entry %s: %s", fingerprint[:12], e)
            return None
        if entry.is_expired():
            return None
        return entry

    async def put_if_absent(self, entry: CacheEntry) -> bool:
        now = datetime.now(timezone.utc).isoformat()
        with self._db.transaction() as conn:
            # An expired row no longer counts as the first writer.
            conn.execute(
                "DELETE FROM scan_cache WHERE fingerprint = ? "
                "AND expires_at IS NOT NULL AND expires_at <= ?",
                (entry.fingerprint, now),
            )
            cursor = conn.execute(
                """INSERT OR IGNORE INTO scan_cache
                   (fingerprint, result, created_at, expires_at, hit_count)
                   VALUES (?, ?, ?, ?, 0)""",
                (
                    entry.fingerprint,
                    entry.result.model_dump_json(),
                    entry.created_at.isoformat(),
                    entry.expires_at.isoformat() if entry.expires_at else None,
                ),
            )
        return cursor.rowcount == 1

    async def increment_hits(self, fingerprint: str) -> None:
        self._db.execute(
            "UPDATE scan_cache SET hit_count = hit_count + 1 WHERE fingerprint = ?",
            (fingerprint,),
        )

    async def delete(self, fingerprint: str) -> None:
        self._db.execute("DELETE FROM scan_cache WHERE fingerprint = ?", (fingerprint,))
