# src/tracking/timer.py — v1
"""Per-stage wall-clock timing for one resolution."""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from scavy.tracking.models import StageTimings


class StageTimer:
    """Accumulates milliseconds per named stage since construction."""

    def __init__(self) -> None:
        self._start = time.perf_counter()
        self._stages: dict[str, float] = {}

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        t0 = time.perf_counter()
        try:
            yield
        finally:
            elapsed = (time.perf_counter() - t0) * 1000
            self._stages[name] = self._stages.get(name, 0.0) + elapsed

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000

    def snapshot(self) -> StageTimings:
        """Timings so far, with ``total`` measured from construction."""
        known = {k: round(v, 3) for k, v in self._stages.items() if k in StageTimings.model_fields and k != "total"}
        return StageTimings(**known, total=round(self.elapsed_ms(), 3))
