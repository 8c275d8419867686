import time
from typing import Optional

from timesync.errors import ConfigurationError
from timesync.logging import TIMESYNC_LOGGER
from timesync.settings import TimeSyncSettings
from timesync.subsystems import SubsystemRegistry
from timesync.time.time_sync_service import TimeSyncService
from timesync.web.server import TimeSyncWebServer


class TimeSyncDaemon:
    def __init__(
        self,
        settings: TimeSyncSettings,
        time_sync_service: Optional[TimeSyncService] = None,
        subsystems: Optional[SubsystemRegistry] = None,
        enable_web: bool = True,
    ):
        self.settings = settings
        TIMESYNC_LOGGER.setLevel(self.settings.log_level)
        self.subsystems = subsystems or SubsystemRegistry()
        self.time_sync_service = time_sync_service or TimeSyncService(subsystems=self.subsystems)
        self.enable_web = enable_web
        self.web_server = None
        self.configuration_error: Optional[str] = None

        if self.enable_web:
            self.web_server = TimeSyncWebServer(daemon=self, host=settings.web_host, port=settings.web_port)

    def initialize(self) -> bool:
        """Initialize the time sync service.

        Returns:
            True on success; on failure the error is kept in ``configuration_error``.
        """
        try:
            self.time_sync_service.initialize(self.settings)
        except ConfigurationError as e:
            self.configuration_error = str(e)
            TIMESYNC_LOGGER.error(f"Invalid time sync configuration: {e}")
            return False
        self.configuration_error = None
        return True

    def run(self):
        if not self.initialize():
            raise SystemExit(1)

        if self.enable_web:
            self.web_server.start()
            TIMESYNC_LOGGER.info(f"Control interface available at http://{self.web_server.host}:{self.web_server.port}")

        try:
            TIMESYNC_LOGGER.info("Time sync daemon running... (press Ctrl+C to exit)")
            self._keep_running()
        finally:
            self._shutdown()

    def _keep_running(self):
        """Keep the daemon running until interrupted."""
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            TIMESYNC_LOGGER.info("Shutting down daemon.")

    def _shutdown(self):
        """Clean up resources on shutdown."""
        self.time_sync_service.shutdown()
        if self.enable_web and self.web_server:
            TIMESYNC_LOGGER.info("Stopping web server...")
            self.web_server.stop()
