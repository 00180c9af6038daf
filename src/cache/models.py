# src/cache/models.py — v2
"""Cache domain models: CacheEntry and store outcome."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel

from scavy.core.models import IdentificationResult

StoreStatus = Literal["ok", "already_exists", "failed"]


class CacheEntry(BaseModel):
    """Immutable result keyed by image fingerprint."""

    fingerprint: str
    result: IdentificationResult
    created_at: datetime
    expires_at: datetime | None = None
    hit_count: int = 0

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at
