"""
Background Removal API - Main Application

FastAPI application with:
- One removal route backed by rembg (in-process) or remove.bg (remote)
- Structured logging with structlog
- Prometheus metrics
- Global exception handling
"""

import time
import uuid
import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from bgremoval.core.config import Settings, settings as default_settings
from bgremoval.core.logging import setup_logging, get_logger, request_id_var
from bgremoval.core.exceptions import register_exception_handlers
from bgremoval.core.metrics import set_app_info, http_requests_total, http_request_duration_seconds
from bgremoval.core.staging import StagingArea
from bgremoval.engines.removal import (
    LocalRembgBackend,
    RemoteRemoveBgBackend,
    RemovalBackend,
    build_backend,
)
from bgremoval.api.routes import api_router

logger = get_logger(__name__)


# =============================================================================
# Lifespan Handler
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - startup and shutdown."""
    settings: Settings = app.state.settings
    backend: RemovalBackend = app.state.backend

    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        backend=backend.name,
        port=settings.PORT,
    )

    set_app_info(
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        backend=backend.name,
    )

    if isinstance(backend, RemoteRemoveBgBackend) and not backend.api_key:
        logger.warning(
            "remove_bg_api_key_not_set",
            message="REMOVE_BG_API_KEY environment variable is not set. API calls will fail."
        )

    if isinstance(backend, LocalRembgBackend) and settings.REMBG_PRELOAD:
        # Keep serving while the model downloads/loads
        app.state.preload_task = asyncio.create_task(backend.warm())
        logger.info("rembg_model_loading_in_background", model=backend.model_name)

    yield

    logger.info("application_shutting_down")
    await backend.aclose()
    logger.info("application_shutdown_complete")


# =============================================================================
# Application Factory
# =============================================================================
def create_app(
    settings: Optional[Settings] = None,
    backend: Optional[RemovalBackend] = None,
    staging: Optional[StagingArea] = None,
) -> FastAPI:
    """
    Build the application.

    Settings, backend and staging area are fixed here for the life of the app;
    tests pass fakes in place of the real ones.
    """
    settings = settings or default_settings

    setup_logging(
        log_level=settings.LOG_LEVEL,
        json_format=settings.LOG_FORMAT_JSON
    )

    app = FastAPI(
        title=settings.APP_NAME,
        description="Upload an image to POST /remove-background and get it back with the background removed.",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.backend = backend or build_backend(settings)
    app.state.staging = staging or StagingArea(settings.STAGING_DIR)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request timing + request id middleware
    @app.middleware("http")
    async def add_request_context(request: Request, call_next):
        """Tag the request for logging and track timing for metrics."""
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        start_time = time.time()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        duration = time.time() - start_time

        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=request.url.path
        ).observe(duration)

        http_requests_total.labels(
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()

        response.headers["X-Process-Time"] = str(duration)
        response.headers["X-Request-ID"] = request_id
        return response

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/", tags=["root"], response_class=PlainTextResponse)
    async def root(request: Request):
        """Plain-text service banner."""
        label = request.app.state.backend.describe()
        return f"Background Removal API (using {label}). POST an image to /remove-background."

    @app.get("/health", tags=["health"])
    async def health(request: Request):
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "backend": request.app.state.backend.name,
        }

    return app


app = create_app()


# =============================================================================
# Development Server
# =============================================================================
def run():
    """Console entry point: serve on PORT."""
    import uvicorn
    uvicorn.run(
        "bgremoval.main:app",
        host="0.0.0.0",
        port=default_settings.PORT,
        log_level=default_settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
