"""Priority-ordered, per-source bounded-retry time synchronization."""

import time
from typing import Callable, Optional, Sequence

from timesync.errors import ConfigurationError
from timesync.logging import TIMESYNC_LOGGER
from timesync.time.status_publisher import SyncStatusPublisher
from timesync.time.sync_outcome import OutcomeKind, SyncOutcome
from timesync.time.time_sources import AbstractTimeSource


class SynchronizationEngine:
    """
    Drives one synchronization attempt across the configured sources.

    Sources are tried in configuration order, which encodes operator
    preference. Each source gets ``max_retries + 1`` attempts separated by
    ``inter_source_interval_ms`` before the engine moves on, so a flaky source
    cannot starve a healthy later one. There is no backoff inside a single
    ``synchronize()`` call; spacing between calls is the scheduler's job.

    ``synchronize()`` blocks for up to
    ``len(sources) * (max_retries + 1) * inter_source_interval_ms`` plus query
    timeouts, so callers must run it off latency-sensitive threads.
    """

    def __init__(
        self,
        client: AbstractTimeSource,
        publisher: SyncStatusPublisher,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.publisher = publisher
        self._sleep = sleep
        self._sources: tuple[str, ...] = ()
        self._max_retries = 0
        self._interval_ms = 0
        self._initialized = False

    def initialize(
        self,
        sources: Sequence[str],
        max_retries: int,
        inter_source_interval_ms: int,
        automatic: bool = True,
    ) -> None:
        """
        Store the source list and retry policy. May only be called once.

        Raises:
            ConfigurationError: On a second call, negative policy values, or an
                empty source list while automatic sync is enabled.
        """
        if self._initialized:
            raise ConfigurationError("Synchronization engine is already initialized")
        if max_retries < 0 or inter_source_interval_ms < 0:
            raise ConfigurationError("Retry count and interval must be non-negative")
        sources = tuple(s for s in sources if s)
        if automatic and not sources:
            raise ConfigurationError("At least one time source is required when automatic sync is enabled")

        self._sources = sources
        self._max_retries = max_retries
        self._interval_ms = inter_source_interval_ms
        self._initialized = True
        TIMESYNC_LOGGER.info(
            f"Time sources: {', '.join(sources) or '(none)'} "
            f"(retries={max_retries}, interval={inter_source_interval_ms}ms)"
        )

    @property
    def sources(self) -> tuple[str, ...]:
        return self._sources

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def inter_source_interval_ms(self) -> int:
        return self._interval_ms

    def synchronize(self) -> SyncOutcome:
        """
        Query sources in priority order until one yields a usable time.

        Returns:
            The first SUCCESS; otherwise INVALID if any attempt received an
            unusable time value, else EXHAUSTED. Never raises for source
            failures.
        """
        if not self._initialized:
            raise ConfigurationError("Synchronization engine used before initialize()")
        if not self._sources:
            return SyncOutcome.exhausted("No time sources configured")

        saw_invalid = False
        attempts_per_source = self._max_retries + 1
        total = len(self._sources) * attempts_per_source
        made = 0

        for source in self._sources:
            for attempt in range(1, attempts_per_source + 1):
                if made > 0 and self._interval_ms > 0:
                    self._sleep(self._interval_ms / 1000.0)
                made += 1

                outcome = self._query(source)
                if outcome.is_success:
                    TIMESYNC_LOGGER.debug(f"{source} answered on attempt {attempt}/{attempts_per_source}")
                    if outcome.source is None:
                        outcome = SyncOutcome.success(outcome.timestamp, source=source)
                    return outcome

                if outcome.kind == OutcomeKind.INVALID:
                    saw_invalid = True
                TIMESYNC_LOGGER.debug(
                    f"{source} attempt {attempt}/{attempts_per_source} failed ({outcome.kind.value})"
                    + (f": {outcome.message}" if outcome.message else "")
                )

            if made < total:
                TIMESYNC_LOGGER.info(f"Giving up on {source}, trying next source")

        TIMESYNC_LOGGER.warning(f"Time synchronization failed: {made} attempts across {len(self._sources)} sources")
        if saw_invalid:
            return SyncOutcome.invalid("No source returned a valid time")
        return SyncOutcome.exhausted("All time sources failed")

    def last_known_source(self) -> Optional[str]:
        return self.publisher.status().source

    def last_sync_timestamp(self) -> float:
        """Last successful sync time in epoch seconds (0 if never synchronized)."""
        return self.publisher.status().sync_time

    def _query(self, source: str) -> SyncOutcome:
        try:
            return self.client.query(source)
        except Exception as e:
            # A misbehaving client counts as one failed attempt
            TIMESYNC_LOGGER.error(f"Time source {source} raised: {e}", exc_info=True)
            return SyncOutcome.exhausted(str(e))
