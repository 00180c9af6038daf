# src/disclosure/store.py — v1
"""Per-stage caches for progressive disclosure.

Stage 1 is keyed by fingerprint, stage 2 by normalised device identity and
stage 3 by identity + component. All writes are insert-or-ignore.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from scavy.core.models import ComponentItem, DeviceIdentity
from scavy.disclosure.models import ComponentStub
from scavy.storage.database import Database

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS disclosure_identities (
    fingerprint TEXT PRIMARY KEY,
    identity TEXT NOT NULL,
    device_id INTEGER,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS disclosure_component_lists (
    identity_key TEXT PRIMARY KEY,
    components TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS disclosure_component_details (
    identity_key TEXT NOT NULL,
    component_key TEXT NOT NULL,
    detail TEXT NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (identity_key, component_key)
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class DisclosureStore:
    """Insert-or-ignore storage for the three disclosure stages."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._db.ensure_schema(_SCHEMA)

    async def get_identity(self, fingerprint: str) -> tuple[DeviceIdentity, int | None] | None:
        row = self._db.fetchone(
            "SELECT identity, device_id FROM disclosure_identities WHERE fingerprint = ?",
            (fingerprint,),
        )
        if row is None:
            return None
        return DeviceIdentity.model_validate_json(row["identity"]), row["device_id"]

    async def put_identity(
        self, fingerprint: str, identity: DeviceIdentity, device_id: int | None = None
    ) -> bool:
        cursor = self._db.execute(
            "INSERT OR IGNORE INTO disclosure_identities VALUES (?, ?, ?, ?)",
            (fingerprint, identity.model_dump_json(), device_id, _now()),
        )
        return cursor.rowcount == 1

    async def get_component_list(self, identity_key: str) -> list[ComponentStub] | None:
        row = self._db.fetchone(
            "SELECT components FROM disclosure_component_lists WHERE identity_key = ?",
            (identity_key,),
        )
        if row is None:
            return None
        return [ComponentStub.model_validate(c) for c in json.loads(row["components"])]

    async def put_component_list(self, identity_key: str, components: list[ComponentStub]) -> bool:
        cursor = self._db.execute(
            "INSERT OR IGNORE INTO disclosure_component_lists VALUES (?, ?, ?)",
            (identity_key, json.dumps([c.model_dump() for c in components]), _now()),
        )
        return cursor.rowcount == 1

    async def get_component_detail(self, identity_key: str, component_key: str) -> ComponentItem | None:
        row = self._db.fetchone(
            "SELECT detail FROM disclosure_component_details "
            "WHERE identity_key = ? AND component_key = ?",
            (identity_key, component_key),
        )
        if row is None:
            return None
        return ComponentItem.model_validate_json(row["detail"])

    async def put_component_detail(
        self, identity_key: str, component_key: str, detail: ComponentItem
    ) -> bool:
        cursor = self._db.execute(
            "INSERT OR IGNORE INTO disclosure_component_details VALUES (?, ?, ?, ?)",
            (identity_key, component_key, detail.model_dump_json(), _now()),
        )
        return cursor.rowcount == 1
