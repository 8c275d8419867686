import threading

from timesync.time.sync_outcome import SyncOutcome
from timesync.time.time_sources import AbstractTimeSource


class ScriptedTimeSource(AbstractTimeSource):
    """Time source whose replies are scripted per source id.

    ``script`` maps a source id to a list of outcomes consumed in order; the
    last entry repeats once the list runs out. Unknown sources are exhausted.
    """

    def __init__(self, script=None):
        self.script = {source: list(outcomes) for source, outcomes in (script or {}).items()}
        self.calls = []

    def query(self, source_id):
        self.calls.append(source_id)
        outcomes = self.script.get(source_id)
        if not outcomes:
            return SyncOutcome.exhausted(f"{source_id} unreachable")
        if len(outcomes) > 1:
            return outcomes.pop(0)
        return outcomes[0]

    def get_source_name(self):
        return "scripted"


class FakeTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.finished = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        # Runs even if cancelled, like a timer thread that already expired
        self.finished = True
        self.function()


class TimerFactory:
    """Collects every FakeTimer created by a scheduler."""

    def __init__(self):
        self.timers = []

    def __call__(self, interval, function):
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    @property
    def last(self):
        return self.timers[-1]

    @property
    def live(self):
        return [t for t in self.timers if t.started and not t.cancelled and not t.finished]


class RecordingClock:
    """Clock writer that records instead of touching the host clock."""

    def __init__(self, error=None):
        self.writes = []
        self.error = error

    def __call__(self, timestamp):
        if self.error is not None:
            raise self.error
        self.writes.append(timestamp)


class GatedTimeSource(AbstractTimeSource):
    """Time source whose n-th query blocks until ``release(n)`` is called.

    Each query returns the n-th timestamp in ``timestamps`` as a success, which
    lets a test decide the order in which concurrent syncs complete.
    """

    def __init__(self, timestamps, timeout=2.0):
        self.timestamps = list(timestamps)
        self.timeout = timeout
        self.started = [threading.Event() for _ in self.timestamps]
        self.released = [threading.Event() for _ in self.timestamps]
        self._next = 0
        self._lock = threading.Lock()

    def query(self, source_id):
        with self._lock:
            index = self._next
            self._next += 1
        self.started[index].set()
        self.released[index].wait(self.timeout)
        return SyncOutcome.success(self.timestamps[index], source=source_id)

    def wait_started(self, index):
        return self.started[index].wait(self.timeout)

    def release(self, index):
        self.released[index].set()

    def get_source_name(self):
        return "gated"
