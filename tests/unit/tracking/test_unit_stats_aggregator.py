# tests/unit/tracking/test_unit_stats_aggregator.py — v2
"""Tests for tracking/stats_aggregator.py — rollups, percentiles, cost ledger."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from scavy.tracking.models import ScanLog, StageTimings
from scavy.tracking.stats_aggregator import (
    bucket_key,
    cost_ledger,
    percentile,
    rollup,
    rollup_by_period,
)

T0 = datetime(2026, 3, 14, 9, 15, tzinfo=timezone.utc)


def _log(tier: str, total_ms: float, cost: float = 0.0, **kwargs) -> ScanLog:
    return ScanLog(
        tier=tier,
        stage_timings=StageTimings(total=total_ms),
        cost_usd=cost,
        created_at=kwargs.pop("created_at", T0),
        **kwargs,
    )


@pytest.fixture
def mixed_logs() -> list[ScanLog]:
    return [
        _log("cache", 10, cost_saved_usd=0.002),
        _log("database", 20),
        _log("ai", 100, 0.001, provider="gemini", user_id="alice"),
        _log("ai", 200, 0.002, provider="openai", user_id="bob", success=False),
    ]


class TestPercentile:
    def test_interpolates(self):
        assert percentile([1, 2, 3, 4, 5], 0.95) == pytest.approx(4.8)

    def test_exact_index(self):
        assert percentile([5, 1, 3], 0.5) == 3

    def test_empty(self):
        assert percentile([], 0.5) == 0.0


class TestBucketKey:
    def test_hour(self):
        assert bucket_key(T0, "hour") == "2026-03-14T09:00"

    def test_day(self):
        assert bucket_key(T0, "day") == "2026-03-14"


class TestRollup:
    def test_empty(self):
        r = rollup([], bucket="x")
        assert r.total_scans == 0
        assert r.cache_hit_rate == 0.0

    def test_mixed(self, mixed_logs):
        r = rollup(mixed_logs)

        assert r.total_scans == 4
        assert r.cache_hits == 1
        assert r.cache_misses == 3
        assert r.cache_hit_rate == 0.25
        assert r.database_hits == 1
        assert r.ai_calls == 2
        assert r.avg_total_ms == pytest.approx(82.5)
        assert r.p50_total_ms == pytest.approx(60.0)
        assert (r.min_total_ms, r.max_total_ms) == (10, 200)
        assert r.total_cost_usd == pytest.approx(0.003)
        assert r.avg_cost_per_scan == pytest.approx(0.00075)
        assert r.total_cost_saved_usd == pytest.approx(0.002)
        assert r.by_provider == {"gemini": 1, "openai": 1}
        assert r.success_rate == 0.75

    def test_by_period(self):
        logs = [
            _log("ai", 100, created_at=T0),
            _log("cache", 5, created_at=T0 + timedelta(minutes=30)),
            _log("cache", 5, created_at=T0 - timedelta(hours=2)),
        ]
        rollups = rollup_by_period(logs, "hour")

        assert [r.bucket for r in rollups] == ["2026-03-14T07:00", "2026-03-14T09:00"]
        assert [r.total_scans for r in rollups] == [1, 2]

        assert len(rollup_by_period(logs, "day")) == 1


class TestCostLedger:
    def test_groups_by_user_and_provider(self, mixed_logs):
        mixed_logs.append(_log("ai", 50, 0.004, provider="gemini"))
        ledger = cost_ledger(mixed_logs, since=T0 - timedelta(days=1))

        assert ledger.total_cost_usd == pytest.approx(0.007)
        assert ledger.by_user == {"alice": 0.001, "bob": 0.002, "anonymous": 0.004}
        assert ledger.by_provider == {"gemini": 0.005, "openai": 0.002}

    def test_window(self, mixed_logs):
        old = _log("ai", 50, 0.5, provider="gemini", created_at=T0 - timedelta(days=3))
        ledger = cost_ledger(mixed_logs + [old], since=T0 - timedelta(days=1))
        assert ledger.by_provider["gemini"] == pytest.approx(0.001)
