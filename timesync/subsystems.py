"""Registry of host subsystems whose readiness other components observe."""

import threading
from enum import Enum
from typing import Any, Dict, Optional

from timesync.logging import TIMESYNC_LOGGER


class Subsystem(str, Enum):
    """Subsystems that can be asserted as active."""

    TIME = "time"


class SubsystemRegistry:
    """Thread-safe set of active subsystems and the component providing each."""

    def __init__(self):
        self._lock = threading.Lock()
        self._active: Dict[Subsystem, Any] = {}

    def is_active(self, subsystem: Subsystem) -> bool:
        with self._lock:
            return subsystem in self._active

    def set(self, subsystem: Subsystem, provider: Any = None) -> bool:
        """
        Mark a subsystem active.

        Returns:
            True if the subsystem became active, False if it already was.
        """
        with self._lock:
            if subsystem in self._active:
                return False
            self._active[subsystem] = provider

        TIMESYNC_LOGGER.info(f"Subsystem {subsystem.value} is now active")
        return True

    def provider(self, subsystem: Subsystem) -> Optional[Any]:
        with self._lock:
            return self._active.get(subsystem)

    def active_subsystems(self) -> list[str]:
        with self._lock:
            return sorted(s.value for s in self._active)
