"""FastAPI web application exposing the time sync control commands."""

import json
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from timesync.constants import API_PREFIX, INVALID_TIME_TEXT
from timesync.errors import ClockWriteError
from timesync.logging import TIMESYNC_LOGGER
from timesync.time.sync_outcome import OutcomeKind

UNSUPPORTED_REQUEST = "Unsupported request for the TimeSync service"
INVALID_TIME_GIVEN = "Invalid time given."


class TimeSyncStatus(BaseModel):
    """Current synchronization status."""

    time_source: str = ""
    sync_time: str = ""
    active: bool = False


class SetTimeRequest(BaseModel):
    """Body of a set-time request."""

    time: Optional[str] = Field(default=None, validation_alias=AliasChoices("time", "Time"))


class TimeSyncWebApp:
    """Web application for timesync."""

    def __init__(self, daemon=None):
        self.app = FastAPI(title="timesync", description="Host clock synchronization control")
        self.daemon = daemon

        self._setup_routes()

    @property
    def service(self):
        if self.daemon is None:
            return None
        return self.daemon.time_sync_service

    def _setup_routes(self):
        """Setup all API routes."""
        router = APIRouter(prefix=API_PREFIX)

        @router.get("", response_model=TimeSyncStatus)
        @router.get("/{path:path}", response_model=TimeSyncStatus)
        async def get_status():
            """Get the current time source and last sync time (any GET path)."""
            if self.service is None:
                return TimeSyncStatus(sync_time=INVALID_TIME_TEXT)
            return TimeSyncStatus(**self.service.get_status().to_dict())

        @router.post("/Sync")
        def trigger_sync():
            """Start a synchronization in the background."""
            if self.service is None or self.service.engine is None:
                return JSONResponse({"error": "Time sync service not available"}, status_code=503)
            self.service.trigger_sync()
            return {"status": "OK"}

        @router.put("/Set")
        async def set_time(request: Request):
            """Set the system time from an ISO-8601 string."""
            if self.service is None:
                return JSONResponse({"error": "Time sync service not available"}, status_code=503)

            body = await self._read_set_time_body(request)
            if body is False:
                return JSONResponse({"error": INVALID_TIME_GIVEN}, status_code=400)

            try:
                outcome = self.service.set_time(body.time if body else None)
            except ClockWriteError as e:
                TIMESYNC_LOGGER.error(str(e))
                return JSONResponse({"error": str(e)}, status_code=500)

            if outcome.kind == OutcomeKind.INVALID:
                return JSONResponse({"error": INVALID_TIME_GIVEN}, status_code=400)
            if not outcome.is_success:
                return JSONResponse({"error": outcome.message or "Time not set"}, status_code=503)
            return {"status": "OK"}

        @router.api_route("", methods=["POST", "PUT", "DELETE", "PATCH"])
        @router.api_route("/{path:path}", methods=["POST", "PUT", "DELETE", "PATCH"])
        async def unsupported(request: Request):
            TIMESYNC_LOGGER.debug(f"Unsupported {request.method} request for {request.url.path}")
            return JSONResponse({"error": UNSUPPORTED_REQUEST}, status_code=400)

        self.app.include_router(router)

        @self.app.get("/api/health")
        async def health():
            """Liveness and clock readiness."""
            ready = self.service is not None and self.service.publisher.is_ready
            return {"status": "ok", "time_valid": ready}

    @staticmethod
    async def _read_set_time_body(request: Request):
        """
        Parse the optional set-time body.

        Returns:
            None for an empty body, a SetTimeRequest, or False if the body is
            not a JSON object with a string time.
        """
        raw = await request.body()
        if not raw.strip():
            return None
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return False
        if not isinstance(payload, dict):
            return False
        try:
            return SetTimeRequest.model_validate(payload)
        except ValidationError:
            return False
