"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Each app instance owns its own store and tracker, so tests never share state

For local development:
    uvicorn docrelay.main:app --reload --port 3000

For production, run a single worker: objects live in process memory, so a
second worker would not see the first one's uploads.
    uvicorn docrelay.main:app --host 0.0.0.0 --port 3000
"""

import asyncio
import contextlib
import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import config as config_routes
from .api.routes import files, health, progress, uploads
from .config.settings import Settings, get_settings
from .core.relay.errors import RelayError, ValidationError
from .core.relay.ranges import RangeServer
from .core.relay.sweeper import ExpirySweeper
from .core.relay.tracker import TransferTracker
from .infrastructure.storage.client import StorageConfig, create_object_store

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup: log configuration problems, start the expiry sweeper.
    Shutdown: stop the sweeper, cancel pending expiry timers, drop objects.
    """
    settings: Settings = app.state.settings

    logger.info(
        "Document relay starting",
        extra={
            "version": settings.api_version,
            "public_base_url": settings.resolved_public_base_url,
            "ttl_minutes": settings.ttl_minutes,
            "max_file_mb": settings.max_file_mb,
        }
    )

    problems = settings.validate_required_fields()
    if problems:
        logger.error(
            "Invalid configuration",
            extra={"problems": problems}
        )

    sweeper_task = asyncio.create_task(app.state.sweeper.run())

    yield

    sweeper_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper_task
    app.state.object_store.close()

    logger.info("Document relay shutting down")


def create_app(
    settings: Optional[Settings] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """
    Application factory.

    Wires one object store, one transfer tracker and one range server per
    app. The store notifies the tracker on every eviction so the two maps
    are removed together whichever mechanism expires an object.
    """
    settings = settings or get_settings()
    logging.getLogger("docrelay").setLevel(settings.log_level.upper())

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Ephemeral in-memory relay for office documents.

        1. **Upload**: `POST /upload` with a multipart `file` field
           - Returns `fileUrl` and an Office Online `viewerUrl`
        2. **View**: open `viewerUrl`; the viewer fetches `GET /f/{id}`
           with byte-range requests
        3. **Progress**: poll `GET /progress/{id}` for bytes delivered and ETA

        Documents are never written to disk and disappear after `TTL_MINUTES`.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    store = create_object_store(
        StorageConfig(max_bytes=settings.max_bytes, ttl_seconds=settings.ttl_seconds),
        clock=clock,
    )
    tracker = TransferTracker(clock=clock)
    store.add_eviction_listener(tracker.evict)

    app.state.settings = settings
    app.state.object_store = store
    app.state.transfer_tracker = tracker
    app.state.range_server = RangeServer(store, tracker)
    app.state.sweeper = ExpirySweeper(
        store, tracker, interval_seconds=settings.sweep_interval_seconds
    )

    # CORS middleware
    # Uploads come from arbitrary pages (including file://), so the
    # default allows any origin. Credentials are never used.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Range", "Content-Length", "Accept-Ranges"],
    )

    # Include routers
    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(config_routes.router, prefix="/config", tags=["Health"])
    app.include_router(uploads.router, prefix="/upload", tags=["Files"])
    app.include_router(files.router, prefix="/f", tags=["Files"])
    app.include_router(progress.router, prefix="/progress", tags=["Files"])

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        """Render domain errors as {"error": code, ...}."""
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                extra={"path": request.url.path, "error": str(exc)},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_body(),
            headers=exc.response_headers(),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """
        An upload whose multipart body fails validation (a ``file`` sent as
        a plain text field, say) has no usable file part: answer 400
        file_required like a missing part. Other routes keep the default.
        """
        if request.url.path.rstrip("/") != "/upload":
            return await request_validation_exception_handler(request, exc)

        logger.warning(
            "Upload rejected",
            extra={"path": request.url.path, "errors": exc.errors()},
        )
        error = ValidationError("No usable file part in upload")
        return JSONResponse(
            status_code=error.status_code,
            content=error.to_body(),
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        Prevents stack traces from leaking to clients. We log the full
        error server-side but return only a reason code.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={"error": "internal_error"},
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn imports
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "docrelay.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
