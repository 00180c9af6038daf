# tests/unit/catalog/test_unit_resolver.py — v1
"""Tests for catalog/resolver.py — catalog tier lookup."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from scavy.catalog.models import CatalogHints
from scavy.catalog.resolver import CatalogTierResolver
from scavy.catalog.store import CatalogStore


@pytest.fixture
def store(database) -> CatalogStore:
    return CatalogStore(database)


class TestCatalogTierResolver:
    @pytest.mark.asyncio
    async def test_lookup_hit_counts_scan(self, store, sample_device):
        device_id, _ = await store.add_device(sample_device)
        match = await CatalogTierResolver(store).lookup(CatalogHints(text="Nintendo Switch"))
        assert match is not None
        assert match.device.id == device_id
        assert match.result.from_database is True
        assert len(match.result.items) == 2
        assert (await store.get_device(device_id)).scan_count == 1

    @pytest.mark.asyncio
    async def test_below_threshold_is_miss(self, store, sample_device):
        await store.add_device(sample_device)
        resolver = CatalogTierResolver(store, min_relevance=0.99)
        assert await resolver.lookup(CatalogHints(text="nintendo handheld thing")) is None

    @pytest.mark.asyncio
    async def test_best_device_has_no_side_effects(self, store, sample_device):
        device_id, _ = await store.add_device(sample_device)
        best = await CatalogTierResolver(store).best_device(CatalogHints(brand="Nintendo", model="HAC-001"))
        assert best[0].id == device_id
        assert (await store.get_device(device_id)).scan_count == 0

    @pytest.mark.asyncio
    async def test_empty_hints(self, store):
        assert await CatalogTierResolver(store).lookup(CatalogHints()) is None

    @pytest.mark.asyncio
    async def test_store_error_is_miss(self):
        broken = AsyncMock()
        broken.search_candidates.side_effect = RuntimeError("db locked")
        assert await CatalogTierResolver(broken).lookup(CatalogHints(text="anything")) is None
