# src/catalog/store.py — v2
"""SQLite persistence for curated devices and their components.

``(lower(brand), lower(model))`` is unique whenever a model is present, so
promoting the same device twice can never create a second row.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any

from scavy.catalog.models import CatalogComponent, CatalogDevice, CatalogHints
from scavy.catalog.ranking import query_tokens
from scavy.core.models import normalize_key
from scavy.storage.database import Database

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS catalog_devices (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    device_name TEXT NOT NULL,
    brand TEXT,
    model TEXT,
    brand_key TEXT NOT NULL DEFAULT '',
    model_key TEXT,
    category TEXT NOT NULL DEFAULT 'Other',
    industry TEXT,
    aliases TEXT NOT NULL DEFAULT '[]',
    verified INTEGER NOT NULL DEFAULT 0,
    scan_count INTEGER NOT NULL DEFAULT 0,
    confidence_score REAL NOT NULL DEFAULT 0.8,
    disassembly_difficulty TEXT,
    disassembly_time_estimate TEXT,
    injury_risk TEXT,
    damage_risk TEXT,
    tools_required TEXT NOT NULL DEFAULT '[]',
    safety_warnings TEXT NOT NULL DEFAULT '[]',
    estimated_device_age_years INTEGER,
    ifixit_url TEXT,
    video_url TEXT,
    search_text TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_catalog_brand_model
    ON catalog_devices(brand_key, model_key) WHERE model_key IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_catalog_brand ON catalog_devices(brand_key);

CREATE TABLE IF NOT EXISTS catalog_components (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    device_id INTEGER NOT NULL REFERENCES catalog_devices(id) ON DELETE CASCADE,
    component_name TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'Other',
    specifications TEXT NOT NULL DEFAULT '{}',
    reusability_score INTEGER NOT NULL DEFAULT 5,
    market_value_new REAL,
    depreciation_rate REAL,
    market_value_low REAL,
    market_value_high REAL,
    extraction_difficulty TEXT,
    description TEXT NOT NULL DEFAULT '',
    common_uses TEXT NOT NULL DEFAULT '[]',
    quantity INTEGER NOT NULL DEFAULT 1,
    confidence REAL NOT NULL DEFAULT 0.9
);
CREATE INDEX IF NOT EXISTS idx_catalog_components_device ON catalog_components(device_id);
"""


def _key(value: str | None) -> str | None:
    if not value or not value.strip():
        return None
    return value.strip().lower()


def _search_text(device: CatalogDevice) -> str:
    return " ".join(
        filter(None, [device.device_name, device.brand, device.model, *device.aliases])
    ).lower()


class CatalogStore:
    """CRUD and candidate search over the catalog tables."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._db.ensure_schema(_SCHEMA)

    @property
    def database(self) -> Database:
        return self._db

    # --- Writes ---

    def insert_device(self, conn: sqlite3.Connection, device: CatalogDevice) -> tuple[int, bool]:
        """Insert-or-reuse a device inside an open transaction.

        Returns:
            (device_id, created). ``created`` is False when an existing row with
            the same brand/model (or brand/name when no model) was reused.
        """
        brand_key, model_key = _key(device.brand) or "", _key(device.model)

        if model_key is None:
            row = conn.execute(
                "SELECT id FROM catalog_devices WHERE model_key IS NULL "
                "AND brand_key = ? AND lower(device_name) = ?",
                (brand_key, device.device_name.strip().lower()),
            ).fetchone()
            if row is not None:
                return row["id"], False

        cursor = conn.execute(
            """INSERT OR IGNORE INTO catalog_devices
               (device_name, brand, model, brand_key, model_key, category, industry,
                aliases, verified, scan_count, confidence_score, disassembly_difficulty,
                disassembly_time_estimate, injury_risk, damage_risk, tools_required,
                safety_warnings, estimated_device_age_years, ifixit_url, video_url,
                search_text, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                device.device_name,
                device.brand,
                device.model,
                brand_key,
                model_key,
                device.category,
                device.industry,
                json.dumps(device.aliases),
                int(device.verified),
                device.scan_count,
                device.confidence_score,
                device.disassembly_difficulty,
                device.disassembly_time_estimate,
                device.injury_risk,
                device.damage_risk,
                json.dumps(device.tools_required),
                json.dumps(device.safety_warnings),
                device.estimated_device_age_years,
                device.ifixit_url,
                device.video_url,
                _search_text(device),
                (device.created_at or datetime.now(timezone.utc)).isoformat(),
            ),
        )
        if cursor.rowcount == 1:
            return cursor.lastrowid, True

        row = conn.execute(
            "SELECT id FROM catalog_devices WHERE brand_key = ? AND model_key = ?",
            (brand_key, model_key),
        ).fetchone()
        return row["id"], False

    def insert_components(
        self, conn: sqlite3.Connection, device_id: int, components: list[CatalogComponent]
    ) -> int:
        """Insert components for a device inside an open transaction."""
        for c in components:
            conn.execute(
                """INSERT INTO catalog_components
                   (device_id, component_name, category, specifications, reusability_score,
                    market_value_new, depreciation_rate, market_value_low, market_value_high,
                    extraction_difficulty, description, common_uses, quantity, confidence)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    device_id,
                    c.component_name,
                    c.category,
                    json.dumps(c.specifications),
                    c.reusability_score,
                    c.market_value_new,
                    c.depreciation_rate,
                    c.market_value_low,
                    c.market_value_high,
                    c.extraction_difficulty,
                    c.description,
                    json.dumps(c.common_uses),
                    c.quantity,
                    c.confidence,
                ),
            )
        return len(components)

    async def add_device(self, device: CatalogDevice) -> tuple[int, bool]:
        """Insert a device with its components (components only when newly created)."""
        with self._db.transaction() as conn:
            device_id, created = self.insert_device(conn, device)
            if created:
                self.insert_components(conn, device_id, device.components)
        return device_id, created

    async def set_verified(self, device_id: int, verified: bool = True) -> None:
        self._db.execute(
            "UPDATE catalog_devices SET verified = ? WHERE id = ?", (int(verified), device_id)
        )

    async def increment_scan_count(self, device_id: int) -> None:
        self._db.execute(
            "UPDATE catalog_devices SET scan_count = scan_count + 1 WHERE id = ?", (device_id,)
        )

    async def delete_device(self, device_id: int) -> None:
        self._db.execute("DELETE FROM catalog_devices WHERE id = ?", (device_id,))

    # --- Reads ---

    async def get_device(self, device_id: int, with_components: bool = True) -> CatalogDevice | None:
        row = self._db.fetchone("SELECT * FROM catalog_devices WHERE id = ?", (device_id,))
        if row is None:
            return None
        device = _row_to_device(row)
        if with_components:
            device.components = await self.get_components(device_id)
        return device

    async def get_components(self, device_id: int) -> list[CatalogComponent]:
        rows = self._db.fetchall(
            "SELECT * FROM catalog_components WHERE device_id = ? ORDER BY id", (device_id,)
        )
        return [_row_to_component(r) for r in rows]

    async def find_by_identity(
        self, brand: str | None, model: str | None, device_name: str | None = None
    ) -> CatalogDevice | None:
        """Exact lookup by brand/model, or brand/name when there is no model."""
        if _key(model) is not None:
            row = self._db.fetchone(
                "SELECT * FROM catalog_devices WHERE brand_key = ? AND model_key = ?",
                (_key(brand) or "", _key(model)),
            )
        elif device_name:
            row = self._db.fetchone(
                "SELECT * FROM catalog_devices WHERE brand_key = ? AND lower(device_name) = ?",
                (_key(brand) or "", device_name.strip().lower()),
            )
        else:
            return None
        return _row_to_device(row) if row is not None else None

    async def search_candidates(self, hints: CatalogHints, limit: int = 200) -> list[CatalogDevice]:
        """Pre-filter rows for ranking: exact brand match, else token LIKE match."""
        brand_key = _key(hints.brand)
        if brand_key is not None:
            rows = self._db.fetchall(
                "SELECT * FROM catalog_devices WHERE brand_key = ? "
                "ORDER BY scan_count DESC LIMIT ?",
                (brand_key, limit),
            )
            return [_row_to_device(r) for r in rows]

        tokens = query_tokens(hints)
        if not tokens:
            return []
        clause = " OR ".join("search_text LIKE ?" for _ in tokens)
        params: list[Any] = [f"%{t}%" for t in tokens]
        params.append(limit)
        rows = self._db.fetchall(
            f"SELECT * FROM catalog_devices WHERE {clause} ORDER BY scan_count DESC LIMIT ?",
            tuple(params),
        )
        return [_row_to_device(r) for r in rows]

    async def list_devices(self, limit: int = 100) -> list[CatalogDevice]:
        rows = self._db.fetchall(
            "SELECT * FROM catalog_devices ORDER BY scan_count DESC, id LIMIT ?", (limit,)
        )
        return [_row_to_device(r) for r in rows]

    async def count_devices(self, brand: str | None = None, model: str | None = None) -> int:
        if brand is None and model is None:
            row = self._db.fetchone("SELECT COUNT(*) AS n FROM catalog_devices")
        else:
            row = self._db.fetchone(
                "SELECT COUNT(*) AS n FROM catalog_devices WHERE brand_key = ? AND model_key IS ?",
                (_key(brand) or "", _key(model)),
            )
        return row["n"]


def identity_key(device: CatalogDevice) -> str:
    """Disclosure-cache key for a catalog device."""
    if device.brand and device.model:
        return normalize_key(device.brand, device.model)
    return normalize_key(device.brand, device.device_name)


def _row_to_device(row: sqlite3.Row) -> CatalogDevice:
    return CatalogDevice(
        id=row["id"],
        device_name=row["device_name"],
        brand=row["brand"],
        model=row["model"],
        category=row["category"],
        industry=row["industry"],
        aliases=json.loads(row["aliases"]),
        verified=bool(row["verified"]),
        scan_count=row["scan_count"],
        confidence_score=row["confidence_score"],
        disassembly_difficulty=row["disassembly_difficulty"],
        disassembly_time_estimate=row["disassembly_time_estimate"],
        injury_risk=row["injury_risk"],
        damage_risk=row["damage_risk"],
        tools_required=json.loads(row["tools_required"]),
        safety_warnings=json.loads(row["safety_warnings"]),
        estimated_device_age_years=row["estimated_device_age_years"],
        ifixit_url=row["ifixit_url"],
        video_url=row["video_url"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_component(row: sqlite3.Row) -> CatalogComponent:
    return CatalogComponent(
        id=row["id"],
        device_id=row["device_id"],
        component_name=row["component_name"],
        category=row["category"],
        specifications=json.loads(row["specifications"]),
        reusability_score=row["reusability_score"],
        market_value_new=row["market_value_new"],
        depreciation_rate=row["depreciation_rate"],
        market_value_low=row["market_value_low"],
        market_value_high=row["market_value_high"],
        extraction_difficulty=row["extraction_difficulty"],
        description=row["description"],
        common_uses=json.loads(row["common_uses"]),
        quantity=row["quantity"],
        confidence=row["confidence"],
    )
