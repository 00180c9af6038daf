# src/tracking/alerts.py — v1
"""Budget and error-rate checks over the cost ledger and recent scans."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from scavy.config.settings import Settings
from scavy.tracking.models import BudgetAlert, ScanLog
from scavy.tracking.stats_aggregator import cost_ledger

logger = logging.getLogger(__name__)


def check_alerts(
    logs: list[ScanLog],
    settings: Settings,
    now: datetime | None = None,
) -> list[BudgetAlert]:
    """Evaluate daily budgets and the error rate over the last 24 hours."""
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=1)
    recent = [log for log in logs if log.created_at >= since]
    ledger = cost_ledger(recent, since)
    alerts: list[BudgetAlert] = []

    for user, cost in sorted(ledger.by_user.items()):
        if cost > settings.budget_user_daily_usd:
            alerts.append(BudgetAlert(
                kind="user_budget",
                subject=user,
                value=cost,
                threshold=settings.budget_user_daily_usd,
                message=f"User {user} spent ${cost:.4f} in 24h (budget ${settings.budget_user_daily_usd:.2f})",
            ))

    for provider, cost in sorted(ledger.by_provider.items()):
        if cost > settings.budget_provider_daily_usd:
            alerts.append(BudgetAlert(
                kind="provider_budget",
                subject=provider,
                value=cost,
                threshold=settings.budget_provider_daily_usd,
                message=f"Provider {provider} cost ${cost:.2f} in 24h (budget ${settings.budget_provider_daily_usd:.2f})",
            ))

    if len(recent) >= settings.alert_min_scans_for_error_rate:
        error_rate = sum(1 for log in recent if not log.success) / len(recent)
        if error_rate > settings.alert_error_rate_threshold:
            alerts.append(BudgetAlert(
                kind="error_rate",
                subject="all",
                value=round(error_rate, 4),
                threshold=settings.alert_error_rate_threshold,
                message=f"Error rate {error_rate:.1%} over {len(recent)} scans in 24h",
            ))

    for alert in alerts:
        logger.warning("ALERT %s: %s", alert.kind, alert.message)
    return alerts
