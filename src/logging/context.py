# src/logging/context.py — v2
"""Contextual logging support: attach request_id, user_id, fingerprint, tier
and stage to log records emitted while a resolution is in progress.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per resolution.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_user_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "user_id", default=None
)
_fingerprint: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "fingerprint", default=None
)
_tier: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "tier", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    user_id: str | None = None
    fingerprint: str | None = None
    tier: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        user_id=_user_id.get(),
        fingerprint=_fingerprint.get(),
        tier=_tier.get(),
        stage=_stage.get(),
    )


def set_request_context(request_id: str, user_id: str | None = None) -> None:
    """Set request-level context (called once per resolution)."""
    _request_id.set(request_id)
    _user_id.set(user_id)


def set_resolution_context(
    fingerprint: str | None = None,
    tier: str | None = None,
    stage: str | None = None,
) -> None:
    """Update resolution-level context; None leaves a field unchanged."""
    if fingerprint is not None:
        _fingerprint.set(fingerprint)
    if tier is not None:
        _tier.set(tier)
    if stage is not None:
        _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _user_id.set(None)
    _fingerprint.set(None)
    _tier.set(None)
    _stage.set(None)
