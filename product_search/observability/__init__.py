"""Observability module for metrics and monitoring."""

from product_search.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    track_cold_start_retry,
    track_embedding_request,
    track_search_request,
    track_sync_run,
    track_vectorstore_operation,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "track_cold_start_retry",
    "track_embedding_request",
    "track_search_request",
    "track_sync_run",
    "track_vectorstore_operation",
]
