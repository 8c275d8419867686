"""Time source implementations for timesync."""

import time
from abc import ABC, abstractmethod

import ntplib

from timesync.constants import DEFAULT_SOURCE_TIMEOUT_SECONDS, NTP_PORT, NTP_VERSION
from timesync.logging import TIMESYNC_LOGGER
from timesync.time.sync_outcome import SyncOutcome, is_valid_timestamp


class AbstractTimeSource(ABC):
    """Capability to obtain one time sample from a named source.

    Implementations must not retry: retry policy belongs to the
    synchronization engine. Every failure is reported as an outcome value.
    """

    @abstractmethod
    def query(self, source_id: str) -> SyncOutcome:
        """
        Request a single time sample from ``source_id``.

        Returns:
            ``SyncOutcome.success`` carrying the current time in epoch seconds,
            ``SyncOutcome.exhausted`` if the source could not be reached or
            replied with garbage, or ``SyncOutcome.invalid`` if the reply
            carried an unusable time value.
        """
        pass

    @abstractmethod
    def get_source_name(self) -> str:
        """Get the name of this time source."""
        pass


class NTPTimeSource(AbstractTimeSource):
    """NTP-based time source."""

    def __init__(self, timeout: float = DEFAULT_SOURCE_TIMEOUT_SECONDS, port: int = NTP_PORT):
        """
        Initialize NTP time source.

        Args:
            timeout: Query timeout in seconds
            port: UDP port of the NTP servers
        """
        self.timeout = timeout
        self.port = port
        self.client = ntplib.NTPClient()

    def query(self, source_id: str) -> SyncOutcome:
        try:
            response = self.client.request(source_id, version=NTP_VERSION, port=self.port, timeout=self.timeout)
        except (ntplib.NTPException, OSError, ValueError) as e:
            # Unreachable host, DNS failure, timeout or malformed packet
            TIMESYNC_LOGGER.debug(f"NTP query to {source_id} failed: {e}")
            return SyncOutcome.exhausted(f"{source_id}: {e}")

        if not is_valid_timestamp(response.tx_time):
            TIMESYNC_LOGGER.debug(f"NTP reply from {source_id} carried an unusable transmit time")
            return SyncOutcome.invalid(f"{source_id}: transmit time {response.tx_time!r}")

        # Offset is relative to the moment the reply was received
        return SyncOutcome.success(time.time() + response.offset, source=source_id)

    def get_source_name(self) -> str:
        return "ntp"
