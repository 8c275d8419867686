"""Synchronization status tracking and one-shot readiness notification."""

import threading
from dataclasses import replace
from typing import Callable, Optional

from timesync.logging import TIMESYNC_LOGGER
from timesync.time.sync_outcome import SyncStatus


class SyncStatusPublisher:
    """
    Owns the process-wide SyncStatus.

    Updates are serialized through a single lock and readers always receive an
    immutable snapshot. The first success (or an explicit ``mark_ready``)
    releases a one-shot latch that notifies the readiness observer exactly once.
    """

    def __init__(self, readiness_callback: Optional[Callable[[], None]] = None):
        self.readiness_callback = readiness_callback
        self._lock = threading.Lock()
        self._status = SyncStatus()
        self._ready = threading.Event()

    def record_success(self, source: Optional[str], timestamp: float) -> SyncStatus:
        """Store a successful synchronization and notify readiness on the first one."""
        with self._lock:
            self._status = SyncStatus(source=source, sync_time=timestamp, active=True)
            status = self._status
            first = self._release_latch()

        if first:
            self._notify_ready()
        return status

    def mark_ready(self) -> None:
        """Assert the clock is valid without a source sample (e.g. manual set)."""
        with self._lock:
            if not self._status.active:
                self._status = replace(self._status, active=True)
            first = self._release_latch()

        if first:
            self._notify_ready()

    def status(self) -> SyncStatus:
        """Get a consistent snapshot of the current status (thread-safe)."""
        with self._lock:
            return self._status

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def _release_latch(self) -> bool:
        # Caller holds self._lock
        if self._ready.is_set():
            return False
        self._ready.set()
        return True

    def _notify_ready(self) -> None:
        TIMESYNC_LOGGER.info("System time is now valid")
        if self.readiness_callback is None:
            return
        try:
            self.readiness_callback()
        except Exception as e:
            TIMESYNC_LOGGER.error(f"Readiness callback failed: {e}", exc_info=True)
