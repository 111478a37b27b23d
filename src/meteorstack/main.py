"""
Main FastAPI application entry point.

This module sets up the FastAPI app with all middleware, routes, and lifecycle events.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict

import structlog
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.meteorstack.api import healthz_router, meteorites_router, metrics_router
from src.meteorstack.config import get_settings, Settings
from src.meteorstack.core.auth import require_valid_config
from src.meteorstack.core.cache import DatasetCache
from src.meteorstack.core.exceptions import MeteorStackException
from src.meteorstack.core.metrics import MetricsCollector
from src.meteorstack.core.store import get_store_client

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Max-Age": "86400",
}


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Silence the verbose watchfiles logger
    logging.getLogger("watchfiles").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_lifespan_handler(settings: Settings) -> Any:
    """Create a lifespan handler with access to settings."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Opens the remote store client and sets up the dataset cache.
        The dataset itself is loaded lazily by the first gated request.
        """
        logger = structlog.get_logger(__name__)
        logger.info("Starting MeteorStack service", version=app.version)

        metrics_collector = MetricsCollector()
        app.state.metrics = metrics_collector

        store_client = get_store_client()
        app.state.store_client = store_client
        await store_client.start()

        app.state.dataset_cache = DatasetCache(
            loader=store_client.fetch_all,
            metrics=metrics_collector,
        )

        missing = settings.missing_credentials()
        if missing:
            logger.error("Service started without credentials, all requests will fail", missing=missing)

        try:
            logger.info("MeteorStack service started successfully")
            yield
        finally:
            logger.info("Shutting down MeteorStack service")
            await store_client.stop()
            logger.info("MeteorStack service shutdown complete")

    return lifespan


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function ensures all configuration is applied
    whether running via FastAPI CLI or direct execution.
    """
    settings = get_settings()

    configure_logging(settings.log_level)

    lifespan = create_lifespan_handler(settings)

    app = FastAPI(
        title="MeteorStack",
        description="Read-only meteorite falls API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    return app


# Create the app instance
app = create_app()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
    max_age=86400,
)


@app.middleware("http")
async def record_request_metrics(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Record request count and latency per matched route."""
    start_time = time.perf_counter()
    response = await call_next(request)

    metrics = getattr(request.app.state, "metrics", None)
    if metrics is not None:
        route = request.scope.get("route")
        metrics.record_request(
            method=request.method,
            endpoint=getattr(route, "path", "unmatched"),
            status_code=response.status_code,
            duration_seconds=time.perf_counter() - start_time,
        )

    return response


@app.middleware("http")
async def answer_preflight(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """CORS preflight for any path. No identity check, no rate limit."""
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=CORS_HEADERS)
    return await call_next(request)


@app.exception_handler(MeteorStackException)
async def meteorstack_exception_handler(request: Request, exc: MeteorStackException) -> JSONResponse:
    """Handle custom MeteorStack exceptions."""
    logger = structlog.get_logger(__name__)
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request rejected",
        error=str(exc),
        error_code=exc.error_code,
        status_code=exc.status_code,
        path=request.url.path,
        method=request.method,
    )

    headers = {}

    # Add Retry-After header for rate limit errors
    if exc.status_code == 429 and "retry_after" in exc.details:
        headers["Retry-After"] = str(exc.details["retry_after"])

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc)},
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors in the same single-field format."""
    if exc.status_code == 404:
        message = "The requested endpoint is invalid."
    elif exc.status_code == 405:
        message = "The requested method is not allowed."
    else:
        message = str(exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger = structlog.get_logger(__name__)
    logger.error(
        "Unexpected exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected error occurred"},
    )


# Include routers
app.include_router(meteorites_router, tags=["meteorites"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(healthz_router, tags=["health"])


@app.get("/", include_in_schema=False)
async def root(settings: Settings = Depends(require_valid_config)) -> Dict[str, str]:
    """Root endpoint with service information."""
    return {"success": "Welcome to the API root. Please refer to the documentation before sending the request."}


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.meteorstack.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )
