# tests/integration/tracking/test_int_tracking_pipeline.py — v2
"""Integration: resolutions → scan_logs table → rollups, alerts, CSV export.

Covers: scan_logger.py, scan_log_store.py, stats_aggregator.py, alerts.py, exporter.py
No Docker required.
"""

from __future__ import annotations

import csv

import pytest

from scavy.api.facade import build_context, resolve
from scavy.core.errors import ErrorKind, ProviderError
from scavy.core.models import IdentificationRequest, ImagePayload
from scavy.tracking.alerts import check_alerts
from scavy.tracking.exporter import export_scan_logs_csv, format_rollups
from scavy.tracking.stats_aggregator import rollup, rollup_by_period


def _request(b64: str, user_id: str | None = None) -> IdentificationRequest:
    return IdentificationRequest(images=[ImagePayload(base64=b64)], user_id=user_id)


async def _scan_four(int_context, jpeg_factory):
    """Two AI scans and two cache hits by two users, persisted."""
    red, blue = jpeg_factory((200, 30, 30)), jpeg_factory((30, 30, 200))
    await resolve(_request(red, "alice"), int_context)
    await resolve(_request(red, "alice"), int_context)
    await resolve(_request(blue, "bob"), int_context)
    await resolve(_request(blue, "alice"), int_context)
    await int_context.telemetry.drain()
    return int_context


class TestScanLogPersistence:

    @pytest.mark.asyncio
    async def test_rows_written_in_order(self, int_context, jpeg_factory):
        scanned = await _scan_four(int_context, jpeg_factory)
        rows = await scanned.telemetry.store.list_since()

        assert await scanned.telemetry.store.count() == 4
        assert [r.tier for r in rows] == ["ai", "cache", "ai", "cache"]
        assert [r.user_id for r in rows] == ["alice", "alice", "bob", "alice"]
        assert all(r.stage == "full" for r in rows)

    @pytest.mark.asyncio
    async def test_disabled_telemetry_writes_nothing(self, settings, file_database, mock_provider, jpeg_b64):
        settings = settings.model_copy(update={"telemetry_enabled": False})
        context = build_context(settings, database=file_database, providers={"gemini": mock_provider})

        await resolve(_request(jpeg_b64), context)
        await context.telemetry.drain()

        assert await context.telemetry.store.count() == 0


class TestRollups:

    @pytest.mark.asyncio
    async def test_overall_rollup(self, int_context, jpeg_factory):
        scanned = await _scan_four(int_context, jpeg_factory)
        logs = await scanned.telemetry.store.list_since()
        r = rollup(logs)

        assert r.total_scans == 4
        assert r.cache_hits == 2
        assert r.cache_hit_rate == 0.5
        assert r.ai_calls == 2
        assert r.by_provider == {"gemini": 2}
        assert r.total_cost_usd == pytest.approx(2 * 0.00033)
        assert r.total_cost_saved_usd > 0
        assert r.success_rate == 1.0

    @pytest.mark.asyncio
    async def test_period_rollup_formats(self, int_context, jpeg_factory, settings):
        scanned = await _scan_four(int_context, jpeg_factory)
        logs = await scanned.telemetry.store.list_since()
        buckets = rollup_by_period(logs, "day")

        assert len(buckets) == 1
        text = format_rollups(buckets, check_alerts(logs, settings))
        assert "gemini=2" in text
        assert "ALERT" not in text


class TestAlerts:

    @pytest.mark.asyncio
    async def test_user_budget_alert(self, int_context, jpeg_factory, settings):
        scanned = await _scan_four(int_context, jpeg_factory)
        logs = await scanned.telemetry.store.list_since()
        tight = settings.model_copy(update={"budget_user_daily_usd": 0.0001})

        alerts = check_alerts(logs, tight)

        assert {(a.kind, a.subject) for a in alerts} == {("user_budget", "alice"), ("user_budget", "bob")}

    @pytest.mark.asyncio
    async def test_error_rate_alert(self, settings, file_database, provider_factory, jpeg_factory):
        provider = provider_factory([ProviderError("gemini", ErrorKind.TIMEOUT)])
        settings = settings.model_copy(update={"alert_min_scans_for_error_rate": 3})
        context = build_context(settings, database=file_database, providers={"gemini": provider})

        for color in ((200, 30, 30), (30, 200, 30), (30, 30, 200)):
            await resolve(_request(jpeg_factory(color)), context)
        await context.telemetry.drain()

        alerts = check_alerts(await context.telemetry.store.list_since(), settings)
        assert [a.kind for a in alerts] == ["error_rate"]
        assert alerts[0].value == 1.0


class TestCsvExport:

    @pytest.mark.asyncio
    async def test_export_round_trip(self, int_context, jpeg_factory, tmp_path):
        scanned = await _scan_four(int_context, jpeg_factory)
        logs = await scanned.telemetry.store.list_since()
        out = tmp_path / "exports" / "scans.csv"

        assert export_scan_logs_csv(logs, out) == 4

        with out.open(encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert [r["tier"] for r in rows] == ["ai", "cache", "ai", "cache"]
        assert rows[1]["cost_usd"] == "0.0"
        assert rows[0]["provider"] == "gemini"
