# src/tracking/exporter.py — v2
"""Scan log export to CSV and rollup summaries as text."""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from scavy.tracking.models import BudgetAlert, PerformanceRollup, ScanLog

logger = logging.getLogger(__name__)

_CSV_FIELDS = [
    "id", "created_at", "user_id", "fingerprint", "device_name", "tier", "stage",
    "total_ms", "success", "error_kind", "provider", "model",
    "input_tokens", "output_tokens", "cost_usd", "cost_saved_usd", "component_count",
]


def export_scan_logs_csv(logs: list[ScanLog], path: Path) -> int:
    """Export scan logs as CSV for spreadsheet/BI analysis.

    Returns:
        Number of rows written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for log in logs:
            row = log.model_dump()
            row["created_at"] = log.created_at.isoformat()
            row["total_ms"] = log.stage_timings.total
            writer.writerow(row)
    logger.info("Exported %d scan logs to %s", len(logs), path)
    return len(logs)


def format_rollups(rollups: list[PerformanceRollup], alerts: list[BudgetAlert] | None = None) -> str:
    """Human-readable table of rollups followed by any active alerts."""
    if not rollups:
        return "No scans recorded."

    lines: list[str] = [
        f"{'bucket':16s} | {'scans':>5s} | {'p50 ms':>8s} | {'p95 ms':>8s} | "
        f"{'hit rate':>8s} | {'ai':>4s} | {'cost $':>9s} | {'saved $':>9s} | {'ok':>5s}",
    ]
    for r in rollups:
        lines.append(
            f"{r.bucket:16s} | {r.total_scans:5d} | {r.p50_total_ms:8.0f} | "
            f"{r.p95_total_ms:8.0f} | {r.cache_hit_rate:8.1%} | {r.ai_calls:4d} | "
            f"{r.total_cost_usd:9.4f} | {r.total_cost_saved_usd:9.4f} | {r.success_rate:5.0%}"
        )
        if r.by_provider:
            providers = ", ".join(f"{p}={n}" for p, n in sorted(r.by_provider.items()))
            lines.append(f"{'':16s}   providers: {providers}")

    if alerts:
        lines.append("")
        lines.extend(f"! {a.message}" for a in alerts)
    return "\n".join(lines)
