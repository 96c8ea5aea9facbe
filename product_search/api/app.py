"""FastAPI application entry point.

Configures the application with logging, exception handling, metrics,
health checks and the search routes.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from product_search import __version__
from product_search.api.routes import router
from product_search.api.services import build_services
from product_search.config import get_settings
from product_search.exceptions import ErrorCode, ProductSearchError
from product_search.logging_config import get_logger, setup_logging
from product_search.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)

logger = get_logger(__name__)

# Failures that mean search cannot serve at all, as opposed to a bad request
UNAVAILABLE_CODES = frozenset(
    {
        ErrorCode.CONFIGURATION_ERROR,
        ErrorCode.SEARCH_UNAVAILABLE,
        ErrorCode.EMBEDDING_SHAPE_MISMATCH,
        ErrorCode.EMBEDDING_COUNT_MISMATCH,
    }
)

STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.EMBEDDING_COLD_START: 504,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the shared services on startup and closes them on shutdown.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level)
    logger.info(
        "Starting Product Search",
        extra={
            "version": __version__,
            "environment": settings.environment.value,
        },
    )

    services = build_services(settings)
    app.state.services = services

    yield

    logger.info("Shutting down Product Search")
    await services.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Product Search",
        description="Hybrid semantic product search with color-aware ranking",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(MetricsMiddleware)
    app.add_exception_handler(ProductSearchError, product_search_exception_handler)

    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["Metrics"])
    app.include_router(router)

    return app


async def product_search_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle ProductSearchError exceptions.

    Converts exceptions to structured JSON responses.
    """
    if not isinstance(exc, ProductSearchError):
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": ErrorCode.INTERNAL_ERROR.value,
                    "message": str(exc),
                    "details": {},
                }
            },
        )

    logger.error(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    return JSONResponse(
        status_code=get_status_code(exc.code),
        content=exc.to_dict(),
    )


def get_status_code(code: ErrorCode) -> int:
    """Map error code to HTTP status code."""
    if code in UNAVAILABLE_CODES:
        return 503
    return STATUS_CODES.get(code, 500)


async def health_check() -> dict[str, Any]:
    """Basic health check endpoint.

    Returns:
        Health status with version and timestamp.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> dict[str, Any]:
    """Kubernetes readiness probe.

    Reports which components were configured at startup.

    Returns:
        Readiness status with component checks.
    """
    services = getattr(request.app.state, "services", None)
    checks: dict[str, str] = {"config": "ok"}

    if services is not None:
        checks["search"] = "ok" if services.search is not None else "not_configured"
        checks["sync"] = "ok" if services.sync is not None else "not_configured"

    all_ok = checks["config"] == "ok" and checks.get("search", "ok") == "ok"

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe.

    Returns:
        Liveness status.
    """
    return {"status": "alive"}


async def metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


# Create the application instance
app = create_app()
