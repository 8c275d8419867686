"""Background uvicorn server hosting the timesync web application."""

import threading
from typing import Optional

import uvicorn

from timesync.constants import DEFAULT_WEB_HOST, DEFAULT_WEB_PORT
from timesync.logging import TIMESYNC_LOGGER
from timesync.web.app import TimeSyncWebApp


class TimeSyncWebServer:
    """Runs the FastAPI app on a daemon thread so the main thread stays free."""

    def __init__(self, daemon=None, host: str = DEFAULT_WEB_HOST, port: int = DEFAULT_WEB_PORT):
        self.host = host
        self.port = port
        self.web_app = TimeSyncWebApp(daemon=daemon)
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            TIMESYNC_LOGGER.warning("Web server already running")
            return

        config = uvicorn.Config(
            self.web_app.app,
            host=self.host,
            port=self.port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(target=self._server.run, name="TimeSync-Web", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=5.0)
        self._server = None
        self._thread = None
