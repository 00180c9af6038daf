# tests/unit/logging/test_unit_context.py — v2
"""Tests for logging/context.py — per-resolution context variables."""

from __future__ import annotations

import asyncio

import pytest

from scavy.logging.context import (
    LogContext,
    clear_context,
    get_context,
    set_request_context,
    set_resolution_context,
)


@pytest.fixture(autouse=True)
def _reset_context():
    clear_context()
    yield
    clear_context()


class TestContext:
    def test_defaults(self):
        assert get_context() == LogContext()
        assert get_context().as_dict() == {}

    def test_request_context(self):
        set_request_context("req1", "alice")
        ctx = get_context()
        assert (ctx.request_id, ctx.user_id) == ("req1", "alice")

    def test_resolution_context_partial_update(self):
        set_resolution_context(fingerprint="fp", tier="cache")
        set_resolution_context(stage="identity")
        ctx = get_context()
        assert (ctx.fingerprint, ctx.tier, ctx.stage) == ("fp", "cache", "identity")

    def test_clear(self):
        set_request_context("req1")
        set_resolution_context(tier="ai")
        clear_context()
        assert get_context().as_dict() == {}

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self):
        async def run(request_id: str) -> str | None:
            set_request_context(request_id)
            await asyncio.sleep(0)
            return get_context().request_id

        results = await asyncio.gather(run("a"), run("b"))
        assert results == ["a", "b"]
