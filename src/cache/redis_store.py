# src/cache/redis_store.py — v2
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package. Suitable for multi-instance deployments:
``SET NX`` gives the same first-writer-wins guarantee as the SQLite
primary key, and Redis expiry implements the optional TTL.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

from scavy.cache.base_cache_store import BaseCacheStore
from scavy.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_KEY_PREFIX = "scavy:cache:"
_HITS_PREFIX = "scavy:cache-hits:"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed result cache."""

    def __init__(self, redis_url: str = "", client: object | None = None) -> None:
        if client is None:
            try:
                import redis
            except ImportError as e:
                raise ImportError("redis package required: pip install redis") from e
            client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._client = client

    async def get(self, fingerprint: str) -> CacheEntry | None:
        data = self._client.get(f"{_KEY_PREFIX}{fingerprint}")
        if data is None:
            return None
        try:
            entry = CacheEntry(**json.loads(data))
        except Exception as e:
            logger.warning("Failed to deserialize cache entry %s: %s", fingerprint[:12], e)
            return None
        hits = self._client.get(f"{_HITS_PREFIX}{fingerprint}")
        if hits is not None:
            entry = entry.model_copy(update={"hit_count": int(hits)})
        return entry

    async def put_if_absent(self, entry: CacheEntry) -> bool:
        ttl_s = None
        if entry.expires_at is not None:
            ttl_s = _ttl_seconds(entry.created_at, entry.expires_at)
        inserted = self._client.set(
            f"{_KEY_PREFIX}{entry.fingerprint}",
            entry.model_dump_json(),
            nx=True,
            ex=ttl_s,
        )
        return bool(inserted)

    async def increment_hits(self, fingerprint: str) -> None:
        self._client.incr(f"{_HITS_PREFIX}{fingerprint}")

    async def delete(self, fingerprint: str) -> None:
        self._client.delete(f"{_KEY_PREFIX}{fingerprint}", f"{_HITS_PREFIX}{fingerprint}")

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()


def _ttl_seconds(created_at: datetime, expires_at: datetime) -> int:
    return max(1, int((expires_at - created_at).total_seconds()))
