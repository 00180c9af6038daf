# src/tracking/scan_logger.py — v1
"""Fire-and-forget scan log writer.

``record`` schedules the insert as a background task and returns at once;
a failing write is logged and never reaches the caller. ``drain`` awaits
whatever is still pending (tests, CLI shutdown).
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque

from scavy.tracking.models import ScanLog
from scavy.tracking.scan_log_store import ScanLogStore

logger = logging.getLogger(__name__)


class ScanLogger:
    """Writes ScanLog rows in the background."""

    def __init__(self, store: ScanLogStore | None, enabled: bool = True) -> None:
        self._store = store
        self._enabled = enabled and store is not None
        self._pending: set[asyncio.Task[None]] = set()
        self._records: deque[ScanLog] = deque(maxlen=1000)

    def record(self, log: ScanLog) -> None:
        """Schedule a scan log write without awaiting it."""
        self._records.append(log)
        if not self._enabled:
            return
        task = asyncio.get_running_loop().create_task(self._write(log))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, log: ScanLog) -> None:
        try:
            await self._store.append(log)
        except Exception:
            logger.exception("Failed to write scan log %s (tier=%s)", log.id, log.tier)

    async def drain(self) -> None:
        """Wait for all pending writes."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def records(self) -> list[ScanLog]:
        """Most recent rows recorded by this instance (written or not)."""
        return list(self._records)

    @property
    def store(self) -> ScanLogStore | None:
        return self._store
