"""Prometheus metrics for the product search service.

Provides metrics instrumentation for:
- HTTP request latency and counts
- Embedding request latency and batch sizes
- Search result counts and top similarity
- Vector store operation latency
- Index sync outcomes
"""

import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from product_search.logging_config import get_logger

logger = get_logger(__name__)

# HTTP Request Metrics
HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

HTTP_REQUEST_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

# Embedding Metrics
EMBEDDING_REQUEST_DURATION = Histogram(
    "embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["model", "input_type", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 30.0, 120.0],
)

EMBEDDING_REQUEST_TOTAL = Counter(
    "embedding_requests_total",
    "Total embedding requests",
    ["model", "input_type", "status"],
)

EMBEDDING_BATCH_SIZE = Histogram(
    "embedding_batch_size",
    "Embedding batch size",
    ["model"],
    buckets=[1, 5, 10, 25, 50, 100, 250, 500],
)

EMBEDDING_COLD_START_RETRIES = Counter(
    "embedding_cold_start_retries_total",
    "Requests retried after a model cold-start error",
    ["model"],
)

# Search Metrics
SEARCH_DURATION = Histogram(
    "search_duration_seconds",
    "End-to-end search duration in seconds",
    ["status"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 30.0, 60.0],
)

SEARCH_RESULTS_RETURNED = Histogram(
    "search_results_returned",
    "Number of results returned per search",
    buckets=[0, 1, 5, 10, 20, 50, 100, 250, 500],
)

SEARCH_RESULTS_CUT = Histogram(
    "search_results_cut",
    "Candidates dropped by the relevance cutoff per search",
    buckets=[0, 1, 5, 10, 20, 50, 100, 250, 500],
)

SEARCH_TOP_RAW_SCORE = Histogram(
    "search_top_raw_score",
    "Top raw index score per search (before normalization)",
    buckets=[0.1, 0.25, 0.5, 0.75, 1.0, 5.0, 10.0, 15.0, 25.0, 50.0],
)

SEARCH_COLOR_BOOSTED_TOTAL = Counter(
    "search_color_boosted_total",
    "Searches that carried color boost clauses",
)

# Vector Store Metrics
VECTORSTORE_OPERATION_DURATION = Histogram(
    "vectorstore_operation_duration_seconds",
    "Vector store operation duration",
    ["operation", "status"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

# Sync Metrics
SYNC_RUNS_TOTAL = Counter(
    "index_sync_runs_total",
    "Index sync runs",
    ["trigger", "status"],
)

SYNC_DOCUMENTS_INDEXED = Counter(
    "index_sync_documents_indexed_total",
    "Documents written by index sync",
)

SYNC_DOCUMENT_ERRORS = Counter(
    "index_sync_document_errors_total",
    "Documents rejected during index sync",
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP request metrics."""

    def __init__(self, app: ASGIApp) -> None:
        """Initialize the middleware."""
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request and collect metrics."""
        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start_time

        endpoint = self._normalize_endpoint(request.url.path)

        HTTP_REQUEST_DURATION.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).observe(duration)

        HTTP_REQUEST_TOTAL.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce cardinality."""
        if path.startswith("/health"):
            return "/health"
        if path.startswith("/api/v1/"):
            return "/".join(path.split("/")[:5])
        return path


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST


def track_embedding_request(
    model: str,
    input_type: str,
    duration: float,
    batch_size: int,
    success: bool = True,
) -> None:
    """Track embedding request metrics.

    Args:
        model: Embedding model name.
        input_type: SEARCH or INGEST.
        duration: Request duration in seconds.
        batch_size: Number of texts in the batch.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    EMBEDDING_REQUEST_DURATION.labels(
        model=model, input_type=input_type, status=status
    ).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(
        model=model, input_type=input_type, status=status
    ).inc()
    EMBEDDING_BATCH_SIZE.labels(model=model).observe(batch_size)


def track_cold_start_retry(model: str) -> None:
    """Count a retry triggered by a cold-start error."""
    EMBEDDING_COLD_START_RETRIES.labels(model=model).inc()


def track_search_request(
    duration: float,
    results_returned: int,
    results_cut: int,
    top_raw_score: float,
    color_boosted: bool = False,
    success: bool = True,
) -> None:
    """Track search request metrics.

    Args:
        duration: End-to-end search duration in seconds.
        results_returned: Number of results returned to the caller.
        results_cut: Candidates removed by the relevance cutoff.
        top_raw_score: Highest raw index score.
        color_boosted: Whether the query carried color boosts.
        success: Whether the search succeeded.
    """
    status = "success" if success else "error"
    SEARCH_DURATION.labels(status=status).observe(duration)

    if not success:
        return

    SEARCH_RESULTS_RETURNED.observe(results_returned)
    SEARCH_RESULTS_CUT.observe(results_cut)
    if top_raw_score > 0:
        SEARCH_TOP_RAW_SCORE.observe(top_raw_score)
    if color_boosted:
        SEARCH_COLOR_BOOSTED_TOTAL.inc()


@contextmanager
def track_vectorstore_operation(operation: str) -> Iterator[None]:
    """Time a vector store operation, labelled by outcome."""
    start_time = time.perf_counter()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        VECTORSTORE_OPERATION_DURATION.labels(
            operation=operation, status=status
        ).observe(time.perf_counter() - start_time)


def track_sync_run(
    trigger: str,
    indexed: int,
    errors: int,
    success: bool = True,
) -> None:
    """Track an index sync run.

    Args:
        trigger: What started the sync (manual, empty_index, cli).
        indexed: Documents written.
        errors: Documents rejected.
        success: Whether the run completed.
    """
    status = "success" if success else "error"
    SYNC_RUNS_TOTAL.labels(trigger=trigger, status=status).inc()
    if indexed:
        SYNC_DOCUMENTS_INDEXED.inc(indexed)
    if errors:
        SYNC_DOCUMENT_ERRORS.inc(errors)
