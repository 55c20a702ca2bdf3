"""
FastAPI application factory for the idpflows host adapter.

Receives authentication event payloads over HTTP, runs the requested
workflow and reports the access decision and custom claims it produced.
"""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from idpflows.config import settings
from idpflows.logging_config import configure_logging, get_logger
from idpflows.workflows import build_workflows

from .health import router as health_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan handler for startup and shutdown."""
    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)
    logger.info(
        "Starting idpflows host adapter",
        version="0.1.0",
        workflows=sorted(app.state.workflows),
    )

    yield

    logger.info("Shutting down idpflows host adapter")


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="idpflows",
        description="Authentication-lifecycle workflows for identity provider attribute sync",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.state.workflows = build_workflows(settings.workflows)

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):  # type: ignore[no-untyped-def]
        """Ensure every request has a request ID for logging correlation."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        structlog.contextvars.unbind_contextvars("request_id")

        return response

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled errors."""
        logger.error("Unhandled exception", exc_info=exc, path=str(request.url.path))
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # Health endpoints (no prefix)
    app.include_router(health_router)

    from idpflows.api.routers.workflows import router as workflows_router

    app.include_router(workflows_router)

    return app
