"""Validation and application of time values to the system clock."""

import time
from datetime import datetime, timezone
from typing import Callable, Optional

from dateutil import parser as dtparser

from timesync.errors import ClockWriteError
from timesync.logging import TIMESYNC_LOGGER
from timesync.time.sync_outcome import SyncOutcome, is_valid_timestamp


def set_system_clock(timestamp: float) -> None:
    """Write CLOCK_REALTIME. Requires CAP_SYS_TIME (usually root)."""
    time.clock_settime(time.CLOCK_REALTIME, timestamp)


def parse_iso8601(value: str) -> Optional[float]:
    """
    Parse an ISO-8601 timestamp into epoch seconds.

    Naive values are interpreted as UTC.

    Returns:
        Epoch seconds, or None if the string cannot be parsed.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = dtparser.isoparse(value.strip())
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


class ClockApplier:
    """Applies accepted timestamps to the host clock."""

    def __init__(self, set_clock: Callable[[float], None] = set_system_clock, dry_run: bool = False):
        """
        Args:
            set_clock: Function writing epoch seconds to the clock
            dry_run: Log the intended change without writing the clock
        """
        self.set_clock = set_clock
        self.dry_run = dry_run

    def apply(self, timestamp: float, source: Optional[str] = None) -> SyncOutcome:
        """
        Set the clock to ``timestamp`` if it is valid.

        Returns:
            SUCCESS if the clock was set, INVALID (clock untouched) otherwise.

        Raises:
            ClockWriteError: If the operating system refused the write.
        """
        if not is_valid_timestamp(timestamp):
            TIMESYNC_LOGGER.warning(f"Rejected invalid time value {timestamp!r}")
            return SyncOutcome.invalid(f"Invalid time value {timestamp!r}")

        rendered = datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
        if self.dry_run:
            TIMESYNC_LOGGER.info(f"Dry run: would sync time to {rendered}")
            return SyncOutcome.success(timestamp, source=source)

        TIMESYNC_LOGGER.info(f"Syncing time to {rendered}")
        try:
            self.set_clock(timestamp)
        except OSError as e:
            raise ClockWriteError(f"Failed to set system time: {e}") from e
        return SyncOutcome.success(timestamp, source=source)

    def apply_explicit(self, iso_time: str) -> SyncOutcome:
        """Parse an ISO-8601 string and apply it; parse failures leave the clock untouched."""
        timestamp = parse_iso8601(iso_time)
        if timestamp is None:
            TIMESYNC_LOGGER.warning(f"Rejected unparseable time {iso_time!r}")
            return SyncOutcome.invalid(f"Unparseable time {iso_time!r}")
        return self.apply(timestamp)
