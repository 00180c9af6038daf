# src/cache/base_cache_store.py — v2
"""Abstract cache store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from scavy.cache.models import CacheEntry


class BaseCacheStore(ABC):
    """Unified interface for result-cache backends.

    Writes are insert-or-ignore: the first writer for a fingerprint wins and
    later writers observe its row.
    """

    @abstractmethod
    async def get(self, fingerprint: str) -> CacheEntry | None:
        """Retrieve the live entry for a fingerprint (expired entries read as None)."""

    @abstractmethod
    async def put_if_absent(self, entry: CacheEntry) -> bool:
        """Insert the entry unless a live one exists. Returns True if inserted."""

    @abstractmethod
    async def increment_hits(self, fingerprint: str) -> None:
        """Best-effort hit counter bump."""

    @abstractmethod
    async def delete(self, fingerprint: str) -> None:
        """Remove an entry."""

    def close(self) -> None:
        """Release backend resources."""
