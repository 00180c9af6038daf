# src/llm/retry.py — v2
"""Provider error classification and the single-retry policy.

Only transient failures (timeout, network) are retried, once. Rate limits
and billing exhaustion are surfaced immediately so the caller can switch
providers.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from scavy.core.errors import ErrorKind, ProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for transient provider errors."""

    max_retries: int = 1
    delay_s: float = 0.5


def _status_code(error: Exception) -> int | None:
    for attr in ("status_code", "code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def classify_error(error: Exception) -> ErrorKind:
    """Map an SDK or transport exception to an ErrorKind."""
    if isinstance(error, ProviderError):
        return error.kind
    if isinstance(error, asyncio.TimeoutError):
        return ErrorKind.TIMEOUT

    msg = str(error).lower()
    name = type(error).__name__.lower()
    status = _status_code(error)

    if status == 402 or any(k in msg for k in ("billing", "insufficient_quota", "credit")):
        return ErrorKind.PROVIDER_EXHAUSTED
    if status == 429 or "ratelimit" in name or "resourceexhausted" in name or "rate limit" in msg:
        return ErrorKind.RATE_LIMITED
    if "timeout" in name or "timed out" in msg or "deadline" in name or status in (408, 504):
        return ErrorKind.TIMEOUT
    if (
        "connection" in name
        or "network" in msg
        or "serviceunavailable" in name
        or (status is not None and 500 <= status < 600)
    ):
        return ErrorKind.NETWORK_ERROR
    return ErrorKind.PROVIDER_ERROR


def to_provider_error(provider: str, error: Exception) -> ProviderError:
    """Wrap any exception into a classified ProviderError."""
    if isinstance(error, ProviderError):
        return error
    return ProviderError(
        provider, classify_error(error), message=str(error)[:300], status_code=_status_code(error)
    )


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    provider: str = "unknown",
    config: RetryConfig | None = None,
    **kwargs: Any,
) -> Any:
    """Execute an async provider call, retrying transient failures.

    Raises:
        ProviderError: Classified failure once retries are exhausted.
    """
    config = config or RetryConfig()
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            error = to_provider_error(provider, e)
            attempts += 1
            if not error.kind.transient or attempts > config.max_retries:
                raise error from e

            logger.warning(
                "Provider '%s' %s (attempt %d/%d), retrying in %.1fs",
                provider, error.kind.value, attempts, config.max_retries + 1, config.delay_s,
            )
            await asyncio.sleep(config.delay_s)
