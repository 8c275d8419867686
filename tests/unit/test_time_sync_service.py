"""Unit tests for TimeSyncService command handling and lifecycle."""

import threading
from unittest.mock import MagicMock

import pytest

from tests.utils import GatedTimeSource, RecordingClock, ScriptedTimeSource, TimerFactory
from timesync.errors import ConfigurationError
from timesync.settings import TimeSyncSettings
from timesync.subsystems import Subsystem, SubsystemRegistry
from timesync.time.clock_applier import ClockApplier
from timesync.time.periodic_scheduler import SchedulerState
from timesync.time.sync_outcome import OutcomeKind, SyncOutcome
from timesync.time.time_sources import AbstractTimeSource
from timesync.time.time_sync_service import TimeSyncService

T0 = 1_700_000_000.0


@pytest.fixture(autouse=True)
def isolated_settings_file(tmp_path, monkeypatch):
    monkeypatch.setattr(TimeSyncSettings, "config_file", tmp_path / "config.json")


def _settings(**overrides):
    values = {"sources": ["a", "b"], "retries": 0, "interval_ms": 0, "periodicity_minutes": 1}
    values.update(overrides)
    return TimeSyncSettings(**values)


def _service(script=None, **settings_overrides):
    clock = RecordingClock()
    timers = TimerFactory()
    registry = SubsystemRegistry()
    service = TimeSyncService(
        client=ScriptedTimeSource(script or {}),
        clock_applier=ClockApplier(set_clock=clock),
        subsystems=registry,
        sleep=MagicMock(),
        timer_factory=timers,
    )
    service.initialize(_settings(**settings_overrides))
    return service, clock, timers, registry


# ---------------------------------------------------------------------------
# initialize
# ---------------------------------------------------------------------------


def test_initialize_arms_scheduler():
    service, _, timers, _ = _service()
    assert service.scheduler.state == SchedulerState.ARMED
    assert timers.last.interval == 0


def test_initialize_manual_only_mode_does_not_arm():
    service, _, timers, _ = _service(periodicity_minutes=0)
    assert service.scheduler.state == SchedulerState.IDLE
    assert timers.timers == []


def test_initialize_empty_sources_with_periodic_sync_is_fatal():
    service = TimeSyncService(client=ScriptedTimeSource(), clock_applier=ClockApplier(set_clock=RecordingClock()))
    with pytest.raises(ConfigurationError):
        service.initialize(_settings(sources=[]))


def test_commands_before_initialize_raise():
    service = TimeSyncService()
    with pytest.raises(ConfigurationError):
        service.trigger_sync()


def test_periodicity_minutes_converted_to_milliseconds():
    service, _, _, _ = _service(periodicity_minutes=15)
    assert service.scheduler.periodicity_ms == 15 * 60 * 1000


# ---------------------------------------------------------------------------
# Synchronization
# ---------------------------------------------------------------------------


def test_periodic_sync_applies_time_and_signals_readiness():
    service, clock, timers, registry = _service({"b": [SyncOutcome.success(T0)]})

    timers.last.fire()

    assert clock.writes == [T0]
    status = service.get_status()
    assert status.source == "b"
    assert status.sync_time == T0
    assert status.active is True
    assert registry.is_active(Subsystem.TIME)
    assert timers.last.interval == pytest.approx(60.0)


def test_failed_periodic_sync_still_rearms():
    service, clock, timers, registry = _service()

    timers.last.fire()

    assert clock.writes == []
    assert service.get_status().synchronized is False
    assert registry.is_active(Subsystem.TIME) is False
    assert len(timers.live) == 1


def test_readiness_signalled_once_across_many_syncs():
    service, _, timers, _ = _service({"a": [SyncOutcome.success(T0)]})
    observer = MagicMock()
    service.publisher.readiness_callback = observer

    for _ in range(3):
        timers.live[0].fire()
    service.run_sync()

    observer.assert_called_once()


def test_manual_sync_does_not_touch_scheduler():
    service, clock, timers, _ = _service({"a": [SyncOutcome.success(T0)]})
    armed = timers.last

    thread = service.trigger_sync()
    thread.join(2.0)

    assert clock.writes == [T0]
    assert timers.timers == [armed]
    assert armed.cancelled is False


def test_invalid_time_from_source_leaves_clock():
    service, clock, _, _ = _service({"a": [SyncOutcome.invalid("zero")]})

    outcome = service.run_sync()

    assert outcome.kind == OutcomeKind.INVALID
    assert clock.writes == []


def test_clock_write_failure_reported_as_failed_sync():
    service = TimeSyncService(
        client=ScriptedTimeSource({"a": [SyncOutcome.success(T0)]}),
        clock_applier=ClockApplier(set_clock=RecordingClock(error=PermissionError("EPERM"))),
        sleep=MagicMock(),
        timer_factory=TimerFactory(),
    )
    service.initialize(_settings(sources=["a"]))

    outcome = service.run_sync()

    assert outcome.kind == OutcomeKind.EXHAUSTED
    assert service.get_status().synchronized is False


# ---------------------------------------------------------------------------
# Set time
# ---------------------------------------------------------------------------


def test_set_time_valid_applies_and_signals_readiness():
    service, clock, _, registry = _service()

    outcome = service.set_time("2023-11-14T22:13:20Z")

    assert outcome.is_success
    assert clock.writes == [pytest.approx(T0)]
    assert registry.is_active(Subsystem.TIME)
    # Manual set does not record a sync source
    assert service.get_status().source is None


def test_set_time_malformed_changes_nothing():
    service, clock, _, registry = _service()

    outcome = service.set_time("not-a-time")

    assert outcome.kind == OutcomeKind.INVALID
    assert clock.writes == []
    assert registry.is_active(Subsystem.TIME) is False
    assert service.publisher.is_ready is False


def test_set_time_without_value_asserts_readiness():
    service, clock, _, registry = _service()

    assert service.set_time(None).is_success
    assert clock.writes == []
    assert registry.is_active(Subsystem.TIME)


# ---------------------------------------------------------------------------
# Shutdown
# ---------------------------------------------------------------------------


def test_shutdown_revokes_pending_activity():
    service, clock, timers, _ = _service({"a": [SyncOutcome.success(T0)]})
    pending = timers.last

    service.shutdown()

    assert pending.cancelled is True
    pending.fire()
    assert clock.writes == []
    assert service.scheduler.state == SchedulerState.IDLE


def test_shutdown_is_idempotent():
    service, _, _, _ = _service()
    service.shutdown()
    service.shutdown()
    assert service.is_shut_down


def test_in_flight_result_discarded_after_shutdown():
    started = threading.Event()
    release = threading.Event()

    class BlockingSource(AbstractTimeSource):
        def query(self, source_id):
            started.set()
            release.wait(2.0)
            return SyncOutcome.success(T0, source=source_id)

        def get_source_name(self):
            return "blocking"

    clock = RecordingClock()
    service = TimeSyncService(
        client=BlockingSource(),
        clock_applier=ClockApplier(set_clock=clock),
        timer_factory=TimerFactory(),
    )
    service.initialize(_settings(sources=["a"]))

    thread = service.trigger_sync()
    assert started.wait(2.0)
    service.shutdown()
    release.set()
    thread.join(2.0)

    assert clock.writes == []
    assert service.get_status().synchronized is False


def test_set_time_after_shutdown_is_refused():
    service, clock, _, _ = _service()
    service.shutdown()
    assert service.set_time("2023-11-14T22:13:20Z").is_success is False
    assert clock.writes == []


# ---------------------------------------------------------------------------
# Concurrent commits
# ---------------------------------------------------------------------------


def _gated_service(timestamps):
    source = GatedTimeSource(timestamps)
    clock = RecordingClock()
    service = TimeSyncService(
        client=source,
        clock_applier=ClockApplier(set_clock=clock),
        timer_factory=TimerFactory(),
    )
    service.initialize(_settings(sources=["a"]))
    return service, source, clock


def test_last_completing_sync_wins():
    t1, t2 = T0 + 10, T0 + 20
    service, source, clock = _gated_service([t1, t2])

    first = service.trigger_sync()
    assert source.wait_started(0)
    second = service.trigger_sync()
    assert source.wait_started(1)

    # The later-started run finishes first
    source.release(1)
    second.join(2.0)
    source.release(0)
    first.join(2.0)

    assert clock.writes == [t2, t1]
    assert service.get_status().sync_time == t1


def test_sync_completing_after_explicit_set_wins():
    fetched = T0 + 3600
    service, source, clock = _gated_service([fetched])

    sync = service.trigger_sync()
    assert source.wait_started(0)
    assert service.set_time("2023-11-14T22:13:20Z").is_success
    source.release(0)
    sync.join(2.0)

    assert clock.writes == [pytest.approx(T0), fetched]
    assert service.get_status().sync_time == fetched
