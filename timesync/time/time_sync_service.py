"""Time synchronization service: wiring and the control command contract."""

import threading
from typing import TYPE_CHECKING, Callable, Optional

from timesync.errors import ClockWriteError, ConfigurationError
from timesync.logging import TIMESYNC_LOGGER
from timesync.subsystems import Subsystem, SubsystemRegistry
from timesync.time.clock_applier import ClockApplier
from timesync.time.periodic_scheduler import PeriodicScheduler
from timesync.time.status_publisher import SyncStatusPublisher
from timesync.time.sync_engine import SynchronizationEngine
from timesync.time.sync_outcome import SyncOutcome, SyncStatus
from timesync.time.time_sources import AbstractTimeSource, NTPTimeSource

if TYPE_CHECKING:
    from timesync.settings import TimeSyncSettings


class TimeSyncService:
    """
    Keeps the host clock synchronized and serves status/sync/set commands.

    Periodic syncs run on the scheduler's timer thread; manual syncs run on a
    short-lived daemon thread. Both may query sources concurrently, but
    applying a time and recording the status happen under one commit lock, so
    the last run to complete wins. After ``shutdown()`` no further clock writes
    happen, including from runs still in flight.
    """

    def __init__(
        self,
        client: Optional[AbstractTimeSource] = None,
        clock_applier: Optional[ClockApplier] = None,
        subsystems: Optional[SubsystemRegistry] = None,
        sleep: Optional[Callable[[float], None]] = None,
        timer_factory: Optional[Callable] = None,
    ):
        self.client = client
        self.clock_applier = clock_applier
        self.subsystems = subsystems or SubsystemRegistry()
        self.publisher = SyncStatusPublisher(readiness_callback=self._ensure_subsystem_is_active)
        self.engine: Optional[SynchronizationEngine] = None
        self.scheduler: Optional[PeriodicScheduler] = None

        self._sleep = sleep
        self._timer_factory = timer_factory
        self._commit_lock = threading.Lock()
        self._shutdown = threading.Event()

    def initialize(self, settings: "TimeSyncSettings") -> None:
        """
        Build the engine and scheduler from settings and start periodic sync.

        Raises:
            ConfigurationError: If the settings cannot drive a sync.
        """
        if self.engine is not None:
            raise ConfigurationError("Time sync service is already initialized")

        if self.client is None:
            self.client = NTPTimeSource(timeout=settings.source_timeout_seconds)
        if self.clock_applier is None:
            self.clock_applier = ClockApplier(dry_run=settings.dry_run)

        engine_kwargs = {"sleep": self._sleep} if self._sleep else {}
        engine = SynchronizationEngine(self.client, self.publisher, **engine_kwargs)
        engine.initialize(
            settings.sources,
            settings.retries,
            settings.interval_ms,
            automatic=settings.automatic_sync,
        )
        self.engine = engine

        scheduler_kwargs = {"timer_factory": self._timer_factory} if self._timer_factory else {}
        self.scheduler = PeriodicScheduler(self._periodic_sync, settings.periodicity_ms, **scheduler_kwargs)
        self.scheduler.start()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def get_status(self) -> SyncStatus:
        return self.publisher.status()

    def trigger_sync(self) -> threading.Thread:
        """Run a sync out-of-band and return immediately. The periodic timer is not touched."""
        self._require_engine()
        thread = threading.Thread(target=self.run_sync, name="TimeSync-Manual", daemon=True)
        thread.start()
        return thread

    def run_sync(self) -> SyncOutcome:
        """Synchronize against the sources and apply the result."""
        engine = self._require_engine()
        if self._shutdown.is_set():
            return SyncOutcome.exhausted("Service is shut down")

        outcome = engine.synchronize()
        if not outcome.is_success:
            return outcome
        return self._commit(outcome.timestamp, outcome.source)

    def set_time(self, iso_time: Optional[str]) -> SyncOutcome:
        """
        Apply an explicitly provided ISO-8601 time.

        A request without a time only asserts that the clock is valid.
        """
        if iso_time is None:
            self.publisher.mark_ready()
            return SyncOutcome.success(self.publisher.status().sync_time)

        with self._commit_lock:
            if self._shutdown.is_set():
                return SyncOutcome.exhausted("Service is shut down")
            outcome = self.clock_applier.apply_explicit(iso_time)

        if outcome.is_success:
            self.publisher.mark_ready()
        return outcome

    def shutdown(self) -> None:
        """Revoke scheduled work, then refuse any late clock writes."""
        if self.scheduler is not None:
            self.scheduler.shutdown()
        with self._commit_lock:
            if self._shutdown.is_set():
                return
            self._shutdown.set()
        TIMESYNC_LOGGER.info("Time sync service stopped")

    @property
    def is_shut_down(self) -> bool:
        return self._shutdown.is_set()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _periodic_sync(self) -> SyncOutcome:
        outcome = self.run_sync()
        if not outcome.is_success:
            TIMESYNC_LOGGER.warning(f"Periodic time sync did not succeed ({outcome.kind.value})")
        return outcome

    def _commit(self, timestamp: float, source: Optional[str]) -> SyncOutcome:
        with self._commit_lock:
            if self._shutdown.is_set():
                TIMESYNC_LOGGER.info("Discarding sync result received after shutdown")
                return SyncOutcome.exhausted("Service is shut down")
            try:
                outcome = self.clock_applier.apply(timestamp, source=source)
            except ClockWriteError as e:
                TIMESYNC_LOGGER.error(str(e))
                return SyncOutcome.exhausted(str(e))
            if outcome.is_success:
                self.publisher.record_success(source, timestamp)
        return outcome

    def _ensure_subsystem_is_active(self) -> None:
        if not self.subsystems.is_active(Subsystem.TIME):
            self.subsystems.set(Subsystem.TIME, self)

    def _require_engine(self) -> SynchronizationEngine:
        if self.engine is None:
            raise ConfigurationError("Time sync service used before initialize()")
        return self.engine
