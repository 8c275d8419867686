"""Single recurring synchronization activity."""

import threading
import time
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional

from timesync.logging import TIMESYNC_LOGGER


class SchedulerState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"


class PeriodicScheduler:
    """
    Runs ``task`` every ``periodicity_ms`` milliseconds.

    At most one activity (a ``threading.Timer``) is outstanding. Each firing
    runs the task and, whatever the outcome, re-arms for ``now + periodicity``.
    ``shutdown()`` revokes the outstanding activity; a timer that already
    expired but has not yet started the task sees the revocation through the
    generation counter and does nothing.
    """

    def __init__(
        self,
        task: Callable[[], Any],
        periodicity_ms: int,
        timer_factory: Callable[[float, Callable[[], None]], Any] = threading.Timer,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            task: Callable run on every firing (typically a full sync)
            periodicity_ms: Interval between firings; 0 disables scheduling
            timer_factory: Creates a startable, cancellable timer
            clock: Monotonic clock in seconds used to report the next wake time
        """
        if periodicity_ms < 0:
            raise ValueError("periodicity_ms must be >= 0")
        self.task = task
        self.periodicity_ms = periodicity_ms
        self._timer_factory = timer_factory
        self._clock = clock

        self._lock = threading.Lock()
        self._timer = None
        self._generation = 0
        self._next_wake: Optional[float] = None
        self._stopped = False
        self._firing = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.periodicity_ms > 0

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            return SchedulerState.ARMED if self._timer is not None else SchedulerState.IDLE

    @property
    def is_armed(self) -> bool:
        return self.state == SchedulerState.ARMED

    @property
    def next_wake_time(self) -> Optional[float]:
        """Monotonic time (seconds) at which the armed activity is due."""
        with self._lock:
            return self._next_wake

    def start(self, initial_delay_ms: int = 0) -> None:
        """Arm the first activity if periodic sync is enabled and nothing is armed."""
        if not self.enabled:
            TIMESYNC_LOGGER.info("Periodic time sync disabled; manual sync only")
            return
        with self._lock:
            if self._stopped or self._timer is not None:
                return
            self._arm_locked(initial_delay_ms)

    def arm(self, delay_ms: int) -> bool:
        """
        Replace any outstanding activity with one due in ``delay_ms``.

        Returns:
            False if the scheduler was shut down.
        """
        with self._lock:
            if self._stopped:
                return False
            self._arm_locked(delay_ms)
            return True

    def shutdown(self) -> None:
        """Revoke the outstanding activity; it will not fire afterwards."""
        with self._lock:
            self._stopped = True
            self._generation += 1
            timer, self._timer = self._timer, None
            self._next_wake = None
        if timer is not None:
            timer.cancel()
            TIMESYNC_LOGGER.debug("Revoked scheduled time sync")

    def _arm_locked(self, delay_ms: int) -> None:
        if self._timer is not None:
            self._timer.cancel()

        self._generation += 1
        generation = self._generation
        delay = max(delay_ms, 0) / 1000.0

        timer = self._timer_factory(delay, lambda: self._fire(generation))
        timer.daemon = True
        self._timer = timer
        self._next_wake = self._clock() + delay
        timer.start()

        wake = datetime.now().astimezone() + timedelta(seconds=delay)
        TIMESYNC_LOGGER.info(f"Waking up again at {wake.strftime('%a, %d %b %Y %H:%M:%S %Z')}")

    def _fire(self, generation: int) -> None:
        # Serializes firings so a replaced timer can never overlap its successor
        with self._firing:
            with self._lock:
                if self._stopped or generation != self._generation:
                    return
                self._timer = None
                self._next_wake = None

            try:
                self.task()
            except Exception as e:
                TIMESYNC_LOGGER.error(f"Scheduled time sync failed: {e}", exc_info=True)

            with self._lock:
                # Task may have run past a shutdown or an explicit re-arm
                if self._stopped or generation != self._generation or self._timer is not None:
                    return
                self._arm_locked(self.periodicity_ms)
