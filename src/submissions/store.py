# src/submissions/store.py — v1
"""SQLite persistence for submissions. Rows are updated, never deleted."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any

from scavy.core.errors import SubmissionNotFoundError
from scavy.core.models import IdentificationResult
from scavy.storage.database import Database
from scavy.submissions.models import SubmissionRecord, SubmissionStatus, SubmissionType

_SCHEMA = """
CREATE TABLE IF NOT EXISTS submissions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT,
    raw_result TEXT NOT NULL,
    submission_type TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    fingerprint TEXT,
    brand TEXT,
    model TEXT,
    user_notes TEXT,
    review_notes TEXT,
    reviewed_by TEXT,
    reviewed_at TEXT,
    auto_approved INTEGER NOT NULL DEFAULT 0,
    matched_device_id INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_submissions_status ON submissions(status, created_at);
"""

_UPDATABLE = {
    "status", "user_notes", "review_notes", "reviewed_by", "reviewed_at",
    "auto_approved", "matched_device_id", "raw_result", "brand", "model",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SubmissionStore:
    """CRUD over the submissions table."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._db.ensure_schema(_SCHEMA)

    @property
    def database(self) -> Database:
        return self._db

    async def create(self, record: SubmissionRecord) -> SubmissionRecord:
        now = _now()
        cursor = self._db.execute(
            """INSERT INTO submissions
               (user_id, raw_result, submission_type, status, fingerprint, brand, model,
                user_notes, matched_device_id, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                record.user_id,
                record.raw_result.model_dump_json(),
                record.submission_type.value,
                record.status.value,
                record.fingerprint,
                record.brand,
                record.model,
                record.user_notes,
                record.matched_device_id,
                now,
                now,
            ),
        )
        return await self.get(cursor.lastrowid)

    async def get(self, submission_id: int) -> SubmissionRecord:
        row = self._db.fetchone("SELECT * FROM submissions WHERE id = ?", (submission_id,))
        if row is None:
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")
        return _row_to_record(row)

    def get_tx(self, conn: sqlite3.Connection, submission_id: int) -> SubmissionRecord:
        """Read a submission inside an open transaction."""
        row = conn.execute("SELECT * FROM submissions WHERE id = ?", (submission_id,)).fetchone()
        if row is None:
            raise SubmissionNotFoundError(f"Submission {submission_id} not found")
        return _row_to_record(row)

    def update_tx(self, conn: sqlite3.Connection, submission_id: int, **fields: Any) -> None:
        """Update columns of a submission inside an open transaction."""
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update submission fields: {sorted(unknown)}")
        values: dict[str, Any] = {}
        for key, value in fields.items():
            if isinstance(value, SubmissionStatus):
                value = value.value
            elif isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, IdentificationResult):
                value = value.model_dump_json()
            elif isinstance(value, bool):
                value = int(value)
            values[key] = value
        values["updated_at"] = _now()
        assignments = ", ".join(f"{k} = :{k}" for k in values)
        values["id"] = submission_id
        conn.execute(f"UPDATE submissions SET {assignments} WHERE id = :id", values)

    async def list_submissions(
        self, status: SubmissionStatus | None = None, limit: int = 50
    ) -> list[SubmissionRecord]:
        if status is None:
            rows = self._db.fetchall(
                "SELECT * FROM submissions ORDER BY created_at DESC, id DESC LIMIT ?", (limit,)
            )
        else:
            rows = self._db.fetchall(
                "SELECT * FROM submissions WHERE status = ? ORDER BY created_at DESC, id DESC LIMIT ?",
                (status.value, limit),
            )
        return [_row_to_record(r) for r in rows]


def _row_to_record(row: sqlite3.Row) -> SubmissionRecord:
    return SubmissionRecord(
        id=row["id"],
        user_id=row["user_id"],
        raw_result=IdentificationResult.model_validate_json(row["raw_result"]),
        submission_type=SubmissionType(row["submission_type"]),
        status=SubmissionStatus(row["status"]),
        fingerprint=row["fingerprint"],
        brand=row["brand"],
        model=row["model"],
        user_notes=row["user_notes"],
        review_notes=row["review_notes"],
        reviewed_by=row["reviewed_by"],
        reviewed_at=datetime.fromisoformat(row["reviewed_at"]) if row["reviewed_at"] else None,
        auto_approved=bool(row["auto_approved"]),
        matched_device_id=row["matched_device_id"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )
