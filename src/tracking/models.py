# src/tracking/models.py — v2
"""Telemetry models: scan log rows, rollups, cost ledger, budget alerts."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from scavy.core.models import Stage, Tier


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StageTimings(BaseModel):
    """Milliseconds spent in each step of one resolution."""

    normalize: float = 0.0
    fingerprint: float = 0.0
    cache: float = 0.0
    catalog: float = 0.0
    ai: float = 0.0
    total: float = 0.0


class ScanLog(BaseModel):
    """One append-only row per resolution attempt."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = Field(default_factory=_now)
    user_id: str | None = None
    fingerprint: str | None = None
    device_name: str | None = None
    tier: Tier
    stage: Stage = "full"
    stage_timings: StageTimings = Field(default_factory=StageTimings)
    success: bool = True
    error_kind: str | None = None
    error_message: str | None = None
    provider: str | None = None
    model: str | None = None
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    cost_usd: float = Field(default=0.0, ge=0.0)
    cost_saved_usd: float = Field(default=0.0, ge=0.0)
    component_count: int = Field(default=0, ge=0)


class ModelPricing(BaseModel):
    """Per-model pricing (USD per 1M tokens)."""

    model: str
    input_price_per_1m: float
    output_price_per_1m: float


class PerformanceRollup(BaseModel):
    """Aggregate of scan logs over one time bucket."""

    bucket: str
    period: Literal["hour", "day"]
    total_scans: int = 0
    avg_total_ms: float = 0.0
    p50_total_ms: float = 0.0
    p95_total_ms: float = 0.0
    min_total_ms: float = 0.0
    max_total_ms: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0
    cache_hit_rate: float = 0.0
    database_hits: int = 0
    ai_calls: int = 0
    total_cost_usd: float = 0.0
    avg_cost_per_scan: float = 0.0
    total_cost_saved_usd: float = 0.0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    by_provider: dict[str, int] = Field(default_factory=dict)
    success_rate: float = 0.0


class CostLedger(BaseModel):
    """Cost totals per user and per provider over a window."""

    since: datetime
    total_cost_usd: float = 0.0
    by_user: dict[str, float] = Field(default_factory=dict)
    by_provider: dict[str, float] = Field(default_factory=dict)


class BudgetAlert(BaseModel):
    """Budget or error-rate threshold crossed."""

    kind: Literal["user_budget", "provider_budget", "error_rate"]
    subject: str
    value: float
    threshold: float
    message: str
