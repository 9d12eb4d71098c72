"""
Health Probe

``GET /health`` for container orchestrators. Healthy until the last clean
tick is older than the stale threshold; a freshly booted process is
healthy before its first tick.
"""

import threading
from datetime import datetime, timezone
from typing import Callable

from fastapi import FastAPI
from fastapi.responses import JSONResponse
import structlog
import uvicorn

from support_agent.heartbeat.runner import HeartbeatState

log = structlog.get_logger()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def create_health_app(
    state: HeartbeatState,
    stale_after_seconds: float = 900.0,
    clock: Callable[[], datetime] = _utc_now,
) -> FastAPI:
    """Build the health app bound to ``state``."""
    app = FastAPI(title="Support Agent Health", docs_url=None, redoc_url=None)

    @app.get("/health")
    def health() -> JSONResponse:
        last = state.last_successful_tick_at
        if last is None:
            return JSONResponse({"status": "ok", "boot": True})

        age_seconds = (clock() - last).total_seconds()
        if age_seconds > stale_after_seconds:
            return JSONResponse(
                {
                    "status": "unhealthy",
                    "last_successful_tick_at": last.isoformat(),
                    "age_seconds": age_seconds,
                },
                status_code=500,
            )
        return JSONResponse({"status": "ok", "last_successful_tick_at": last.isoformat()})

    return app


def start_health_server(app: FastAPI, host: str, port: int) -> threading.Thread:
    """Serve ``app`` with uvicorn on a daemon thread."""
    config = uvicorn.Config(app, host=host, port=port, log_level="warning", log_config=None)
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, name="health-server", daemon=True)
    thread.start()
    log.info("health_server_listening", host=host, port=port)
    return thread
