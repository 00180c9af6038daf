# tests/unit/tracking/test_unit_scan_logger.py — v1
"""Tests for tracking/scan_logger.py and tracking/scan_log_store.py."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from scavy.tracking.models import ScanLog, StageTimings
from scavy.tracking.scan_log_store import ScanLogStore
from scavy.tracking.scan_logger import ScanLogger

T0 = datetime(2026, 3, 14, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(database):
    return ScanLogStore(database)


class TestScanLogStore:
    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        log = ScanLog(
            tier="ai", user_id="alice", provider="gemini", model="gemini-1.5-flash",
            input_tokens=1200, output_tokens=800, cost_usd=0.00033, success=False,
            error_kind="parse_failure", stage_timings=StageTimings(ai=800.5, total=820.0),
            created_at=T0,
        )
        await store.append(log)

        [loaded] = await store.list_since()
        assert loaded == log

    @pytest.mark.asyncio
    async def test_since_and_order(self, store):
        for minutes in (30, 0, 90):
            await store.append(ScanLog(tier="cache", created_at=T0 + timedelta(minutes=minutes)))

        logs = await store.list_since(T0 + timedelta(minutes=10))
        assert [log.created_at for log in logs] == [T0 + timedelta(minutes=30), T0 + timedelta(minutes=90)]
        assert await store.count() == 3
        assert len(await store.list_since(limit=1)) == 1

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, store):
        log = ScanLog(tier="cache")
        await store.append(log)
        with pytest.raises(sqlite3.IntegrityError):
            await store.append(log)


class TestScanLogger:
    @pytest.mark.asyncio
    async def test_record_then_drain(self, store):
        logger = ScanLogger(store)
        logger.record(ScanLog(tier="ai"))
        logger.record(ScanLog(tier="cache"))
        await logger.drain()

        assert await store.count() == 2
        assert [log.tier for log in logger.records] == ["ai", "cache"]

    @pytest.mark.asyncio
    async def test_write_failure_swallowed(self):
        broken = MagicMock()
        broken.append = AsyncMock(side_effect=RuntimeError("disk full"))
        logger = ScanLogger(broken)

        logger.record(ScanLog(tier="ai"))
        await logger.drain()

        broken.append.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disabled_keeps_records_only(self, store):
        logger = ScanLogger(store, enabled=False)
        logger.record(ScanLog(tier="ai"))
        await logger.drain()

        assert await store.count() == 0
        assert len(logger.records) == 1

    def test_no_store(self):
        logger = ScanLogger(None)
        assert logger.store is None
