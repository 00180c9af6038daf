# tests/unit/api/test_unit_facade.py — v2
"""Tests for api.facade — context wiring and the public entry points."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from scavy.api.facade import build_context, disclosure, resolve
from scavy.core.models import IdentificationRequest
from scavy.disclosure.controller import DisclosureController


class TestBuildContext:
    def test_stores_share_one_database(self, context, database):
        assert context.database is database
        assert context.submissions.store.database is database
        assert context.catalog.store.database is database
        assert context.telemetry.store is not None
        assert context.disclosure_store is not None

    def test_registry_uses_injected_providers(self, context):
        assert context.ai.registry.configured() == ["gemini"]

    def test_opens_database_from_settings(self, settings, tmp_path):
        settings = settings.model_copy(update={"database_path": tmp_path / "data" / "scavy.db"})
        context = build_context(settings)
        try:
            assert (tmp_path / "data" / "scavy.db").exists()
        finally:
            context.database.close()

    @pytest.mark.asyncio
    async def test_custom_cache_store(self, settings, database):
        cache_store = MagicMock()
        cache_store.get = AsyncMock(return_value=None)
        context = build_context(settings, database=database, cache_store=cache_store)

        assert await context.cache.lookup("fp") is None
        cache_store.get.assert_awaited_once_with("fp")

    def test_disclosure_controller(self, context):
        assert isinstance(disclosure(context), DisclosureController)


class TestResolve:
    @pytest.mark.asyncio
    async def test_user_from_context(self, context, image_payload):
        await resolve(IdentificationRequest(images=[image_payload]), context.for_user("bob"))
        assert context.telemetry.records[-1].user_id == "bob"

    @pytest.mark.asyncio
    async def test_request_user_wins(self, context, image_payload):
        await resolve(IdentificationRequest(images=[image_payload], user_id="carol"), context.for_user("bob"))
        assert context.telemetry.records[-1].user_id == "carol"
