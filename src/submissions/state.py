# src/submissions/state.py — v1
"""Submission status transition table."""

from __future__ import annotations

from scavy.core.errors import InvalidTransitionError
from scavy.submissions.models import SubmissionStatus

TRANSITIONS: dict[SubmissionStatus, frozenset[SubmissionStatus]] = {
    SubmissionStatus.PENDING: frozenset({
        SubmissionStatus.APPROVED,
        SubmissionStatus.REJECTED,
        SubmissionStatus.NEEDS_MORE_INFO,
    }),
    SubmissionStatus.NEEDS_MORE_INFO: frozenset({
        SubmissionStatus.PENDING,
        SubmissionStatus.APPROVED,
        SubmissionStatus.REJECTED,
    }),
    SubmissionStatus.APPROVED: frozenset(),
    SubmissionStatus.REJECTED: frozenset(),
}


def can_transition(current: SubmissionStatus, target: SubmissionStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: SubmissionStatus, target: SubmissionStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)


def is_terminal(status: SubmissionStatus) -> bool:
    return not TRANSITIONS[status]
