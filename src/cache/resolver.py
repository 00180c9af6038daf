# src/cache/resolver.py — v1
"""Cache tier: exact-fingerprint lookup in front of the catalog and AI tiers.

Errors never escape this tier. A failing lookup is a miss and a failing
store is reported as ``"failed"`` after being logged.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from scavy.cache.base_cache_store import BaseCacheStore
from scavy.cache.models import CacheEntry, StoreStatus
from scavy.core.models import IdentificationResult

logger = logging.getLogger(__name__)

# Provenance flags are per-response, not part of the cached payload.
_RESPONSE_ONLY_FIELDS = {"cached", "from_database", "raw_response", "error_kind"}


class CacheTierResolver:
    """Looks up and stores identification results keyed by fingerprint."""

    def __init__(self, store: BaseCacheStore, ttl_days: int | None = None) -> None:
        self._store = store
        self._ttl = timedelta(days=ttl_days) if ttl_days else None

    async def lookup(self, fingerprint: str) -> IdentificationResult | None:
        """Return the cached result for a fingerprint, or None on miss/error."""
        try:
            entry = await self._store.get(fingerprint)
        except Exception:
            logger.warning("Cache lookup failed for %s, treating as miss", fingerprint[:12], exc_info=True)
            return None
        if entry is None:
            return None

        try:
            await self._store.increment_hits(fingerprint)
        except Exception as e:
            logger.debug("Hit counter update failed for %s: %s", fingerprint[:12], e)

        logger.info("Cache hit for %s (hits=%d)", fingerprint[:12], entry.hit_count + 1)
        return entry.result.model_copy(update={"cached": True})

    async def store(self, fingerprint: str, result: IdentificationResult) -> StoreStatus:
        """Insert-or-ignore a result. Losing a race yields ``already_exists``."""
        now = datetime.now(timezone.utc)
        payload = IdentificationResult.model_validate(
            result.model_dump(exclude=_RESPONSE_ONLY_FIELDS)
        )
        entry = CacheEntry(
            fingerprint=fingerprint,
            result=payload,
            created_at=now,
            expires_at=now + self._ttl if self._ttl else None,
        )
        try:
            inserted = await self._store.put_if_absent(entry)
        except Exception:
            logger.exception("Cache store failed for %s", fingerprint[:12])
            return "failed"
        if not inserted:
            logger.debug("Cache entry for %s already exists", fingerprint[:12])
            return "already_exists"
        logger.info("Cached result for %s (%d items)", fingerprint[:12], len(result.items))
        return "ok"
