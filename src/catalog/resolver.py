# src/catalog/resolver.py — v1
"""Catalog tier: answer from the curated device database without a network call."""

from __future__ import annotations

import logging

from scavy.catalog.converter import device_to_result
from scavy.catalog.models import CatalogDevice, CatalogHints, CatalogMatch
from scavy.catalog.ranking import rank
from scavy.catalog.store import CatalogStore

logger = logging.getLogger(__name__)


class CatalogTierResolver:
    """Ranks catalog candidates against hints and returns the best trusted match."""

    def __init__(
        self,
        store: CatalogStore,
        min_relevance: float = 0.5,
        candidate_limit: int = 200,
        default_age_years: int = 3,
        default_depreciation_rate: float = 0.15,
    ) -> None:
        self._store = store
        self._min_relevance = min_relevance
        self._candidate_limit = candidate_limit
        self._default_age_years = default_age_years
        self._default_rate = default_depreciation_rate

    @property
    def store(self) -> CatalogStore:
        return self._store

    async def candidates(
        self, hints: CatalogHints, limit: int | None = None
    ) -> list[tuple[CatalogDevice, float]]:
        """Ranked (device, score) pairs, best first. Read-only."""
        if hints.is_empty:
            return []
        rows = await self._store.search_candidates(hints, limit or self._candidate_limit)
        return rank(hints, rows)

    async def best_device(self, hints: CatalogHints) -> tuple[CatalogDevice, float] | None:
        """Top candidate above the relevance threshold, without side effects."""
        try:
            ranked = await self.candidates(hints)
        except Exception:
            logger.warning("Catalog search failed, treating as miss", exc_info=True)
            return None
        if not ranked:
            return None
        device, score = ranked[0]
        if score < self._min_relevance:
            logger.debug(
                "Best catalog candidate %r scored %.2f < %.2f",
                device.device_name, score, self._min_relevance,
            )
            return None
        return device, score

    async def lookup(self, hints: CatalogHints) -> CatalogMatch | None:
        """Return a trusted match and count the scan, or None."""
        best = await self.best_device(hints)
        if best is None:
            return None
        device, score = best
        try:
            device.components = await self._store.get_components(device.id)
            await self._store.increment_scan_count(device.id)
        except Exception:
            logger.warning("Catalog read failed for device %s, treating as miss", device.id, exc_info=True)
            return None
        device.scan_count += 1

        logger.info(
            "Catalog hit: %r (id=%s, score=%.2f, verified=%s)",
            device.device_name, device.id, score, device.verified,
        )
        result = device_to_result(device, self._default_age_years, self._default_rate)
        return CatalogMatch(device=device, score=score, result=result)
