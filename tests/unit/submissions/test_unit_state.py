# tests/unit/submissions/test_unit_state.py — v1
"""Tests for submissions/state.py."""

from __future__ import annotations

import pytest

from scavy.core.errors import InvalidTransitionError
from scavy.submissions.models import SubmissionStatus as S
from scavy.submissions.state import can_transition, ensure_transition, is_terminal


class TestTransitions:
    @pytest.mark.parametrize("target", [S.APPROVED, S.REJECTED, S.NEEDS_MORE_INFO])
    def test_pending_moves_anywhere(self, target):
        assert can_transition(S.PENDING, target)

    def test_needs_more_info_back_to_pending(self):
        assert can_transition(S.NEEDS_MORE_INFO, S.PENDING)

    @pytest.mark.parametrize("current", [S.APPROVED, S.REJECTED])
    def test_terminal_states(self, current):
        assert is_terminal(current)
        for target in S:
            assert not can_transition(current, target)

    def test_ensure_raises(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            ensure_transition(S.APPROVED, S.REJECTED)
        assert exc_info.value.current == "approved"
        assert exc_info.value.target == "rejected"

    def test_ensure_allows(self):
        ensure_transition(S.PENDING, S.APPROVED)
