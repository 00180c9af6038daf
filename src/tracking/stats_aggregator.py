# src/tracking/stats_aggregator.py — v2
"""Hourly/daily rollups and cost ledgers computed from scan logs."""

from __future__ import annotations

import logging
import math
from collections import Counter, defaultdict
from datetime import datetime
from typing import Literal

from scavy.tracking.models import CostLedger, PerformanceRollup, ScanLog

logger = logging.getLogger(__name__)

Period = Literal["hour", "day"]


def bucket_key(ts: datetime, period: Period) -> str:
    """Bucket label: ``YYYY-MM-DDTHH:00`` for hours, ``YYYY-MM-DD`` for days."""
    if period == "hour":
        return ts.strftime("%Y-%m-%dT%H:00")
    return ts.strftime("%Y-%m-%d")


def percentile(values: list[float], q: float) -> float:
    """Continuous percentile with linear interpolation (0 <= q <= 1)."""
    if not values:
        return 0.0
    ordered = sorted(values)
    pos = (len(ordered) - 1) * q
    lower, upper = math.floor(pos), math.ceil(pos)
    if lower == upper:
        return ordered[int(pos)]
    return ordered[lower] + (ordered[upper] - ordered[lower]) * (pos - lower)


def _running_avg(current_avg: float, current_count: int, new_value: float) -> float:
    """Update a running average with a new value."""
    if current_count == 0:
        return new_value
    return (current_avg * current_count + new_value) / (current_count + 1)


def rollup(logs: list[ScanLog], bucket: str = "all", period: Period = "day") -> PerformanceRollup:
    """Aggregate a set of scan logs into one rollup."""
    if not logs:
        return PerformanceRollup(bucket=bucket, period=period)

    totals = [log.stage_timings.total for log in logs]
    cache_hits = sum(1 for log in logs if log.tier == "cache")
    total_cost = sum(log.cost_usd for log in logs)
    providers = Counter(log.provider for log in logs if log.tier == "ai" and log.provider)

    avg_ms = 0.0
    for i, value in enumerate(totals):
        avg_ms = _running_avg(avg_ms, i, value)

    return PerformanceRollup(
        bucket=bucket,
        period=period,
        total_scans=len(logs),
        avg_total_ms=round(avg_ms, 3),
        p50_total_ms=round(percentile(totals, 0.5), 3),
        p95_total_ms=round(percentile(totals, 0.95), 3),
        min_total_ms=min(totals),
        max_total_ms=max(totals),
        cache_hits=cache_hits,
        cache_misses=len(logs) - cache_hits,
        cache_hit_rate=round(cache_hits / len(logs), 4),
        database_hits=sum(1 for log in logs if log.tier == "database"),
        ai_calls=sum(1 for log in logs if log.tier == "ai"),
        total_cost_usd=round(total_cost, 6),
        avg_cost_per_scan=round(total_cost / len(logs), 6),
        total_cost_saved_usd=round(sum(log.cost_saved_usd for log in logs), 6),
        total_input_tokens=sum(log.input_tokens for log in logs),
        total_output_tokens=sum(log.output_tokens for log in logs),
        by_provider=dict(providers),
        success_rate=round(sum(1 for log in logs if log.success) / len(logs), 4),
    )


def rollup_by_period(logs: list[ScanLog], period: Period = "hour") -> list[PerformanceRollup]:
    """One rollup per hour/day bucket, oldest first."""
    buckets: dict[str, list[ScanLog]] = defaultdict(list)
    for log in logs:
        buckets[bucket_key(log.created_at, period)].append(log)
    return [rollup(buckets[key], key, period) for key in sorted(buckets)]


def cost_ledger(logs: list[ScanLog], since: datetime) -> CostLedger:
    """Cost per user and per provider for rows created since ``since``."""
    by_user: dict[str, float] = defaultdict(float)
    by_provider: dict[str, float] = defaultdict(float)
    total = 0.0
    for log in logs:
        if log.created_at < since or log.cost_usd <= 0:
            continue
        total += log.cost_usd
        by_user[log.user_id or "anonymous"] += log.cost_usd
        if log.provider:
            by_provider[log.provider] += log.cost_usd
    return CostLedger(
        since=since,
        total_cost_usd=round(total, 6),
        by_user={k: round(v, 6) for k, v in by_user.items()},
        by_provider={k: round(v, 6) for k, v in by_provider.items()},
    )
