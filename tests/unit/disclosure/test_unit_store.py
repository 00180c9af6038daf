# tests/unit/disclosure/test_unit_store.py — v1
"""Tests for disclosure/store.py — per-stage insert-or-ignore storage."""

from __future__ import annotations

import pytest

from scavy.core.models import ComponentItem, DeviceIdentity
from scavy.disclosure.models import ComponentStub
from scavy.disclosure.store import DisclosureStore


@pytest.fixture
def store(database):
    return DisclosureStore(database)


class TestIdentity:
    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        identity = DeviceIdentity(device_name="Kindle Paperwhite", manufacturer="Amazon")
        assert await store.put_identity("fp1", identity, 7) is True

        stored, device_id = await store.get_identity("fp1")
        assert stored == identity
        assert device_id == 7

    @pytest.mark.asyncio
    async def test_first_write_wins(self, store):
        await store.put_identity("fp1", DeviceIdentity(device_name="First"))
        assert await store.put_identity("fp1", DeviceIdentity(device_name="Second")) is False

        stored, _ = await store.get_identity("fp1")
        assert stored.device_name == "First"

    @pytest.mark.asyncio
    async def test_miss(self, store):
        assert await store.get_identity("missing") is None


class TestComponentList:
    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        stubs = [
            ComponentStub(component_name="E-ink panel", category="Display/LEDs"),
            ComponentStub(component_name="Li-ion cell", category="Power", quantity=2),
        ]
        await store.put_component_list("amazon|kindle", stubs)
        assert await store.get_component_list("amazon|kindle") == stubs

    @pytest.mark.asyncio
    async def test_miss(self, store):
        assert await store.get_component_list("nothing") is None


class TestComponentDetail:
    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        detail = ComponentItem(component_name="Li-ion cell", category="Power", market_value_low=3, market_value_high=6)
        await store.put_component_detail("amazon|kindle", "li ion cell", detail)

        assert await store.get_component_detail("amazon|kindle", "li ion cell") == detail
        assert await store.get_component_detail("amazon|kindle", "e ink panel") is None
