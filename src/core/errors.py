# src/core/errors.py — v1
"""Typed exceptions and the error-kind taxonomy shared by every tier.

AI-tier failures are the only ones a caller ever sees, and then only as an
``error_kind`` on a well-formed result. Cache, catalog and telemetry errors are
logged and swallowed by their resolvers.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Machine-readable failure categories reported on results and scan logs."""

    PARSE_FAILURE = "parse_failure"
    RATE_LIMITED = "rate_limited"
    PROVIDER_EXHAUSTED = "provider_exhausted"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    STORAGE_WRITE_FAILURE = "storage_write_failure"
    NO_PROVIDER = "no_provider"
    PROVIDER_ERROR = "provider_error"

    @property
    def transient(self) -> bool:
        """Whether one automatic retry is allowed for this kind."""
        return self in (ErrorKind.TIMEOUT, ErrorKind.NETWORK_ERROR)


class ScavyError(Exception):
    """Base class for all scavy errors."""


class ProviderError(ScavyError):
    """An AI provider call failed; ``kind`` tells the caller why."""

    def __init__(
        self,
        provider: str,
        kind: ErrorKind,
        message: str = "",
        status_code: int | None = None,
    ) -> None:
        self.provider = provider
        self.kind = kind
        self.status_code = status_code
        super().__init__(f"{provider}: {kind.value}" + (f" ({message})" if message else ""))


class InvalidImageError(ScavyError):
    """Image payload is missing, too small or not decodable."""


class StageOrderError(ScavyError):
    """A disclosure stage was requested before its prerequisite."""


class InvalidTransitionError(ScavyError):
    """A submission status change is not allowed from its current state."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot move submission from {current!r} to {target!r}")


class SubmissionNotFoundError(ScavyError):
    """No submission exists with the given id."""
