# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from scavy.cache.base_cache_store import BaseCacheStore
from scavy.config.settings import Settings
from scavy.storage.database import Database


def create_cache_store(settings: Settings, database: Database | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings.
        database: Shared database, required for the sqlite backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = settings.cache_backend

    if backend == "sqlite":
        from scavy.cache.sqlite_store import SqliteCacheStore

        if database is None:
            database = Database(settings.database_path)
        return SqliteCacheStore(database)

    if backend == "redis":
        from scavy.cache.redis_store import RedisCacheStore

        if not settings.cache_redis_url:
            raise ValueError("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")
        return RedisCacheStore(redis_url=settings.cache_redis_url)

    raise ValueError(f"Unsupported cache backend: {backend!r}")
