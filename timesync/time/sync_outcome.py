"""Sync outcome and status values."""

import math
from dataclasses import dataclass
from email.utils import formatdate
from enum import Enum
from typing import Optional

from timesync.constants import INVALID_TIME_TEXT, NEVER


class OutcomeKind(str, Enum):
    """Result categories of a synchronization attempt."""

    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    INVALID = "invalid"


@dataclass(frozen=True)
class SyncOutcome:
    """Tagged result of querying a source or running a full synchronization."""

    kind: OutcomeKind

    timestamp: float = NEVER
    """Seconds since the Unix epoch (only meaningful for SUCCESS)."""

    source: Optional[str] = None
    """Source that produced the timestamp, if any."""

    message: Optional[str] = None

    @classmethod
    def success(cls, timestamp: float, source: Optional[str] = None) -> "SyncOutcome":
        return cls(OutcomeKind.SUCCESS, timestamp=timestamp, source=source)

    @classmethod
    def exhausted(cls, message: Optional[str] = None) -> "SyncOutcome":
        return cls(OutcomeKind.EXHAUSTED, message=message)

    @classmethod
    def invalid(cls, message: Optional[str] = None) -> "SyncOutcome":
        return cls(OutcomeKind.INVALID, message=message)

    @property
    def is_success(self) -> bool:
        return self.kind == OutcomeKind.SUCCESS


def is_valid_timestamp(timestamp) -> bool:
    """A usable timestamp is a finite number strictly after the epoch."""
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        return False
    return math.isfinite(timestamp) and timestamp > NEVER


@dataclass(frozen=True)
class SyncStatus:
    """Point-in-time view of the synchronization state."""

    source: Optional[str] = None
    sync_time: float = NEVER
    active: bool = False

    @property
    def synchronized(self) -> bool:
        return self.sync_time != NEVER

    def sync_time_text(self) -> str:
        """RFC 1123 rendering of the last sync time, or the invalid-time marker."""
        if not self.synchronized:
            return INVALID_TIME_TEXT
        return formatdate(self.sync_time, usegmt=True)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "time_source": self.source or "",
            "sync_time": self.sync_time_text(),
            "active": self.active,
        }
