"""Exception types raised by the time synchronization service.

Network failures while querying a source are never raised; they are reported
as ``SyncOutcome`` values so the scheduler can re-arm uniformly.
"""


class TimeSyncError(Exception):
    """Base class for timesync errors."""


class ConfigurationError(TimeSyncError):
    """Invalid or missing configuration detected at initialization."""


class ClockWriteError(TimeSyncError):
    """The host refused to update the system clock."""
