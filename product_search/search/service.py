"""Hybrid semantic product search."""

import time

from product_search.config import SearchSettings, get_settings
from product_search.embeddings.models import InputType
from product_search.embeddings.service import EmbeddingService
from product_search.exceptions import ErrorCode, ProductSearchError, SearchError
from product_search.logging_config import get_logger
from product_search.observability.metrics import track_search_request
from product_search.search.models import RankedHits, SearchResult
from product_search.search.ranking import (
    apply_relevance_cutoff,
    build_color_boosts,
    build_index_query,
    clamp_limit,
    extract_colors,
    fetch_limit_for,
    normalize_scores,
)
from product_search.sync.pipeline import SyncPipeline
from product_search.vectorstore.models import IndexHit
from product_search.vectorstore.service import ProductIndex

logger = get_logger(__name__)


class ProductSearchService:
    """Ranks products for a free-text query.

    Embeds the query, adds color boosts when the query names a color,
    runs a k-NN search (optionally restricted to a category), then
    normalizes scores and drops the weak tail relative to the best hit.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        index: ProductIndex,
        settings: SearchSettings | None = None,
        sync_pipeline: SyncPipeline | None = None,
    ) -> None:
        """Initialize the search service.

        Args:
            embedding_service: Service for query embeddings.
            index: Product vector index.
            settings: Ranking configuration.
            sync_pipeline: Used to fill an empty index on demand.
        """
        self._embedding_service = embedding_service
        self._index = index
        self._settings = settings or get_settings().search
        self._sync_pipeline = sync_pipeline

    async def search(
        self,
        query: str,
        limit: int | None = None,
        category: str | None = None,
    ) -> list[SearchResult]:
        """Search products.

        Args:
            query: Free-text query.
            limit: Maximum results (defaults and clamps per settings).
            category: Exact category to restrict to.

        Returns:
            Results ordered by descending similarity. Empty for a blank
            query, without calling any backend.

        Raises:
            EmbeddingError: If the query cannot be embedded.
            VectorStoreError: If the index query fails.
            SearchError: On any other failure.
        """
        trimmed = query.strip()
        if not trimmed:
            return []

        limit = clamp_limit(limit, self._settings.default_limit, self._settings.max_limit)
        fetch_limit = fetch_limit_for(limit, self._settings.max_limit)
        category = category.strip() if category and category.strip() else None

        colors = extract_colors(trimmed)
        boosts = build_color_boosts(
            colors,
            name_weight=self._settings.name_boost,
            description_weight=self._settings.description_boost,
        )

        start_time = time.perf_counter()
        try:
            embedding = await self._embedding_service.embed(trimmed, InputType.SEARCH)
            request = build_index_query(
                embedding.embedding,
                fetch_limit,
                category=category,
                boosts=boosts,
            )
            await self._sync_if_empty()
            hits = await self._index.query(request)
        except ProductSearchError:
            track_search_request(
                duration=time.perf_counter() - start_time,
                results_returned=0,
                results_cut=0,
                top_raw_score=0.0,
                success=False,
            )
            raise
        except Exception as e:
            track_search_request(
                duration=time.perf_counter() - start_time,
                results_returned=0,
                results_cut=0,
                top_raw_score=0.0,
                success=False,
            )
            logger.error(f"Search failed: {e}")
            raise SearchError(
                f"Search failed: {e}",
                code=ErrorCode.SEARCH_ERROR,
                details={"query": trimmed[:100], "error": str(e)},
            ) from e

        ranked = self.rank(hits, limit)

        track_search_request(
            duration=time.perf_counter() - start_time,
            results_returned=len(ranked.results),
            results_cut=ranked.cut,
            top_raw_score=ranked.top_raw_score,
            color_boosted=bool(boosts),
        )
        logger.info(
            "Search completed",
            extra={
                "query_length": len(trimmed),
                "limit": limit,
                "category": category,
                "colors": colors,
                "candidates": ranked.candidates,
                "cut": ranked.cut,
                "results_count": len(ranked.results),
            },
        )

        return ranked.results

    def rank(self, hits: list[IndexHit], limit: int) -> RankedHits:
        """Normalize, cut off and truncate index hits.

        Args:
            hits: Raw hits in index order.
            limit: Maximum results to keep.

        Returns:
            RankedHits with the final results and bookkeeping.
        """
        normalized = normalize_scores(hits)
        kept = apply_relevance_cutoff(normalized, self._settings.cutoff_fraction)

        return RankedHits(
            results=kept[:limit],
            candidates=len(hits),
            cut=len(normalized) - len(kept),
            top_raw_score=max((hit.score for hit in hits), default=0.0),
        )

    async def _sync_if_empty(self) -> None:
        """Fill an empty index before searching it.

        Best effort: a failed sync is logged and the search goes ahead
        against whatever the index holds.
        """
        if self._sync_pipeline is None or not self._settings.auto_sync_on_empty:
            return

        await self._index.ensure_schema()
        if await self._index.count() > 0:
            return

        logger.warning("Product index is empty, running sync before search")
        try:
            summary = await self._sync_pipeline.sync(trigger="empty_index")
        except Exception as e:
            logger.warning(
                f"Sync on empty index failed, searching anyway: {e}",
                exc_info=True,
            )
            return

        logger.info(
            "Sync on empty index finished",
            extra={"indexed": summary.indexed, "total": summary.total},
        )
