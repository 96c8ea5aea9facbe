"""API routes for product search and index maintenance."""

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from product_search.api.services import SearchServices
from product_search.exceptions import (
    ConfigurationError,
    ErrorCode,
    ProductSearchError,
    SearchError,
)
from product_search.logging_config import get_logger
from product_search.search.models import SearchResult
from product_search.search.service import ProductSearchService
from product_search.sync.models import BackfillSummary, SyncSummary
from product_search.sync.pipeline import BackfillPipeline, SyncPipeline

logger = get_logger(__name__)


router = APIRouter(prefix="/api/v1", tags=["Search"])


class SearchRequest(BaseModel):
    """Request body for product search."""

    query: str = Field(description="Free-text query")
    limit: int | None = Field(
        default=None,
        ge=1,
        description="Maximum results (clamped to the configured maximum)",
    )
    category: str | None = Field(
        default=None,
        description="Restrict results to this category",
    )


class SearchResponse(BaseModel):
    """Response from product search."""

    query: str = Field(description="Query as received")
    count: int = Field(description="Number of results")
    results: list[SearchResult] = Field(description="Ranked products")


class SearchHealthResponse(BaseModel):
    """Search readiness report."""

    ok: bool = Field(description="Whether search can serve requests")
    message: str | None = Field(default=None, description="Status summary")
    indexed_products: int | None = Field(
        default=None,
        description="Documents in the index",
    )
    error: str | None = Field(default=None, description="Failure reason")


def get_services(request: Request) -> SearchServices:
    """Services built at startup (empty when startup did not run)."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        return SearchServices(problems={"startup": "services not initialized"})
    return services


def get_search_service(
    services: SearchServices = Depends(get_services),
) -> ProductSearchService:
    """Search pipeline, or 503 when it is not configured."""
    if services.search is None:
        raise SearchError(
            "Search is unavailable: embedding service not configured",
            code=ErrorCode.SEARCH_UNAVAILABLE,
            details=services.problems,
        )
    return services.search


def get_sync_pipeline(
    services: SearchServices = Depends(get_services),
) -> SyncPipeline:
    """Sync pipeline, or 503 when it is not configured."""
    if services.sync is None:
        raise ConfigurationError(
            "Index sync is not configured",
            details=services.problems,
        )
    return services.sync


def get_backfill_pipeline(
    services: SearchServices = Depends(get_services),
) -> BackfillPipeline:
    """Backfill pipeline, or 503 when it is not configured."""
    if services.backfill is None:
        raise ConfigurationError(
            "Embedding backfill is not configured",
            details=services.problems,
        )
    return services.backfill


@router.post("/search", response_model=SearchResponse)
async def search_endpoint(
    request: SearchRequest,
    search_service: ProductSearchService = Depends(get_search_service),
) -> SearchResponse:
    """Hybrid semantic product search."""
    results = await search_service.search(
        request.query,
        limit=request.limit,
        category=request.category,
    )
    return SearchResponse(query=request.query, count=len(results), results=results)


@router.post("/search/sync", response_model=SyncSummary)
async def sync_endpoint(
    pipeline: SyncPipeline = Depends(get_sync_pipeline),
) -> SyncSummary:
    """Re-populate the index from the catalog."""
    return await pipeline.sync(trigger="manual")


@router.post("/search/backfill-embeddings", response_model=BackfillSummary)
async def backfill_endpoint(
    pipeline: BackfillPipeline = Depends(get_backfill_pipeline),
) -> BackfillSummary:
    """Compute embeddings and store them on the catalog rows."""
    return await pipeline.run()


@router.get("/search/health", response_model=SearchHealthResponse)
async def search_health_endpoint(
    services: SearchServices = Depends(get_services),
) -> JSONResponse:
    """Check that search is configured and report the index size."""
    if services.index is None or services.embedding_service is None:
        problem = services.problems.get("embedding") or "Search is not configured"
        return _health_response(502, ok=False, error=problem)

    try:
        count = await services.index.count()
    except ProductSearchError as e:
        logger.error(f"Search health check failed: {e.message}")
        return _health_response(500, ok=False, error=e.message)

    return _health_response(
        200,
        ok=True,
        message=(
            f"Search ready. Embedding model: {services.embedding_service.model_name}. "
            f"{count} products indexed."
        ),
        indexed_products=count,
    )


def _health_response(status_code: int, **fields: Any) -> JSONResponse:
    body = SearchHealthResponse(**fields)
    return JSONResponse(status_code=status_code, content=body.model_dump())
