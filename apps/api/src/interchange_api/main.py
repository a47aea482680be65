"""FastAPI application entry point."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from interchange_api.config import Settings, get_settings
from interchange_api.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from interchange_api.routers.snapshot import router as snapshot_router
from interchange_api.services.gtfs_rt.diagnostics import ConnectionDiagnostics
from interchange_api.services.snapshot.refresher import SnapshotRefresher
from interchange_api.services.snapshot.service import (
    get_snapshot_service,
    reset_snapshot_service,
)

logger = get_logger(__name__)

HEARTBEAT_TEXT = "Interchange Snapshot API OK"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    settings = get_settings()
    logger.info(
        "Starting Interchange Snapshot API",
        interchange=settings.interchange_station_name,
        city_targets=settings.target_destination_stop_names,
        cache_seconds=settings.cache_seconds,
        realtime_enabled=bool(settings.odata_key),
    )

    refresher: Optional[SnapshotRefresher] = None
    if settings.snapshot_auto_refresh and settings.odata_key:
        refresher = SnapshotRefresher(
            get_snapshot_service(), settings.odata_key, settings.refresh_seconds
        )
        await refresher.start()
    app.state.refresher = refresher

    try:
        yield
    finally:
        if refresher is not None:
            await refresher.stop()
        reset_snapshot_service()
        logger.info("Interchange Snapshot API stopped")


def build_health_report(
    settings: Settings,
    diagnostics: ConnectionDiagnostics,
    refresher: Optional[SnapshotRefresher] = None,
) -> dict[str, Any]:
    """Summarise configuration and feed health for ``/health``.

    ``unhealthy`` means the service cannot work as configured; ``degraded``
    means it is serving but realtime data is missing or failing.
    """
    missing_env = settings.missing_required_env()
    failures = diagnostics.consecutive_failures

    issues: list[str] = []
    if missing_env:
        issues.append("Missing required environment variables: " + ", ".join(missing_env))
    if not settings.odata_key:
        issues.append("ODATA_KEY is not set; realtime feeds are disabled")
    if failures:
        issues.append(f"{failures} consecutive feed failures")

    if missing_env:
        status = "unhealthy"
    elif failures or not settings.odata_key:
        status = "degraded"
    else:
        status = "healthy"

    return {
        "service": settings.app_name,
        "status": status,
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "connectionDiagnostics": diagnostics.to_dict(),
            "refresher": refresher.get_status() if refresher is not None else None,
        },
        "issues": issues,
    }


def create_app() -> FastAPI:
    settings = get_settings()
    production = settings.environment == "production"

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Upcoming tram and city-bound train departures with transfer pairings",
        lifespan=lifespan,
        docs_url=None if production else "/docs",
        redoc_url=None,
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next: Any) -> Any:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        bind_request_context(request_id=request_id, path=request.url.path)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(snapshot_router)

    @app.get("/", tags=["meta"], response_class=PlainTextResponse)
    async def heartbeat() -> str:
        return HEARTBEAT_TEXT

    @app.get("/health", tags=["meta"])
    async def health_check(request: Request) -> dict[str, Any]:
        return build_health_report(
            get_settings(),
            get_snapshot_service().diagnostics,
            getattr(request.app.state, "refresher", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "internal_server_error", "message": "An unexpected error occurred"},
        )

    return app


app = create_app()
