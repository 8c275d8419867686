"""Time synchronization for timesync."""

from timesync.time.clock_applier import ClockApplier
from timesync.time.periodic_scheduler import PeriodicScheduler, SchedulerState
from timesync.time.status_publisher import SyncStatusPublisher
from timesync.time.sync_engine import SynchronizationEngine
from timesync.time.sync_outcome import OutcomeKind, SyncOutcome, SyncStatus
from timesync.time.time_sources import AbstractTimeSource, NTPTimeSource
from timesync.time.time_sync_service import TimeSyncService

__all__ = [
    "AbstractTimeSource",
    "ClockApplier",
    "NTPTimeSource",
    "OutcomeKind",
    "PeriodicScheduler",
    "SchedulerState",
    "SyncOutcome",
    "SyncStatus",
    "SyncStatusPublisher",
    "SynchronizationEngine",
    "TimeSyncService",
]
