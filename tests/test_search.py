"""Tests for the product search service."""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from product_search.catalog.models import ProductRecord
from product_search.config import SearchSettings
from product_search.embeddings.models import InputType
from product_search.exceptions import EmbeddingError, ErrorCode, SearchError, VectorStoreError
from product_search.search.service import ProductSearchService
from product_search.sync.models import SyncSummary
from product_search.vectorstore.models import IndexHit


def _hit(product_id: str, score: float, **fields: Any) -> IndexHit:
    fields.setdefault("name", f"Product {product_id}")
    return IndexHit(product=ProductRecord(id=product_id, **fields), score=score)


class TestProductSearchService:
    """Tests for ProductSearchService."""

    async def test_blank_query_returns_nothing(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """A blank query calls no backend."""
        service = ProductSearchService(embedding_service, product_index, SearchSettings())

        assert await service.search("   ") == []
        embedding_service.embed.assert_not_called()
        product_index.query.assert_not_called()

    async def test_color_query_boosts_and_cuts(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """A color query is boosted, normalized and cut relative to the top."""
        product_index.query.return_value = [
            _hit("a", 25.9, name="Red Midi Dress"),
            _hit("b", 15.8, name="Floral Dress"),
            _hit("c", 0.9, name="Blue Dress"),
        ]
        service = ProductSearchService(embedding_service, product_index, SearchSettings())

        results = await service.search("red dress", limit=20)

        embedding_service.embed.assert_awaited_once_with("red dress", InputType.SEARCH)
        request = product_index.query.call_args.args[0]
        assert request.k == 40
        assert request.num_candidates == 100
        assert [(b.field, b.term, b.weight) for b in request.boosts] == [
            ("name", "red", 15.0),
            ("description", "red", 10.0),
        ]

        assert [r.id for r in results] == ["a", "b"]
        assert results[0].similarity == 1.0
        assert results[1].similarity == pytest.approx(0.61, abs=0.01)

    async def test_category_filter_without_colors(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """Category restricts the search; no colors means no boosts."""
        service = ProductSearchService(embedding_service, product_index, SearchSettings())

        await service.search("summer outfit", limit=10, category=" dresses ")

        request = product_index.query.call_args.args[0]
        assert request.category == "dresses"
        assert request.boosts == []
        assert request.k == 20

    async def test_blank_category_ignored(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """A whitespace category is treated as absent."""
        service = ProductSearchService(embedding_service, product_index, SearchSettings())

        await service.search("shoes", category="  ")

        assert product_index.query.call_args.args[0].category is None

    async def test_limit_clamped(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """Oversized limits are capped and fetching stays within the maximum."""
        product_index.query.return_value = [_hit(str(i), 1.0) for i in range(600)]
        service = ProductSearchService(embedding_service, product_index, SearchSettings())

        results = await service.search("shoes", limit=10_000)

        assert len(results) == 500
        assert product_index.query.call_args.args[0].k == 500

    async def test_default_limit(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """No limit returns at most 20 results."""
        product_index.query.return_value = [_hit(str(i), 1.0) for i in range(40)]
        service = ProductSearchService(embedding_service, product_index, SearchSettings())

        assert len(await service.search("shoes")) == 20

    async def test_similarities_in_unit_range(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """Results are ordered, within [0, 1], and above the cutoff."""
        product_index.query.return_value = [
            _hit("a", 0.82),
            _hit("b", 0.75),
            _hit("c", 0.5),
            _hit("d", 0.2),
        ]
        service = ProductSearchService(embedding_service, product_index, SearchSettings())

        results = await service.search("linen shirt")

        similarities = [r.similarity for r in results]
        assert similarities == sorted(similarities, reverse=True)
        assert all(0.0 <= s <= 1.0 for s in similarities)
        assert all(s >= 0.4 * similarities[0] for s in similarities)
        assert [r.id for r in results] == ["a", "b", "c"]

    async def test_embedding_error_propagates(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """Embedding failures reach the caller unchanged."""
        embedding_service.embed.side_effect = EmbeddingError(
            "cold", code=ErrorCode.EMBEDDING_COLD_START
        )
        service = ProductSearchService(embedding_service, product_index, SearchSettings())

        with pytest.raises(EmbeddingError):
            await service.search("dress")

    async def test_index_error_propagates(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """Index failures reach the caller unchanged."""
        product_index.query.side_effect = VectorStoreError("down")
        service = ProductSearchService(embedding_service, product_index, SearchSettings())

        with pytest.raises(VectorStoreError):
            await service.search("dress")

    async def test_unexpected_error_wrapped(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """Unexpected failures become SearchError."""
        product_index.query.side_effect = RuntimeError("boom")
        service = ProductSearchService(embedding_service, product_index, SearchSettings())

        with pytest.raises(SearchError, match="boom"):
            await service.search("dress")


class TestSyncOnEmptyIndex:
    """Tests for the best-effort sync on an empty index."""

    async def test_empty_index_triggers_sync(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """An empty index is synced before the query runs."""
        product_index.count.return_value = 0
        sync_pipeline = AsyncMock()
        sync_pipeline.sync.return_value = SyncSummary(indexed=3, total=3)
        service = ProductSearchService(
            embedding_service, product_index, SearchSettings(), sync_pipeline=sync_pipeline
        )

        await service.search("dress")

        sync_pipeline.sync.assert_awaited_once_with(trigger="empty_index")
        product_index.ensure_schema.assert_awaited()
        product_index.query.assert_awaited_once()

    async def test_sync_failure_does_not_fail_search(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """A failed sync is swallowed and the search still runs."""
        product_index.count.return_value = 0
        sync_pipeline = AsyncMock()
        sync_pipeline.sync.side_effect = RuntimeError("catalog down")
        service = ProductSearchService(
            embedding_service, product_index, SearchSettings(), sync_pipeline=sync_pipeline
        )

        assert await service.search("dress") == []
        product_index.query.assert_awaited_once()

    async def test_populated_index_skips_sync(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """No sync runs when the index has documents."""
        sync_pipeline = AsyncMock()
        service = ProductSearchService(
            embedding_service, product_index, SearchSettings(), sync_pipeline=sync_pipeline
        )

        await service.search("dress")

        sync_pipeline.sync.assert_not_called()

    async def test_disabled_by_setting(
        self, embedding_service: AsyncMock, product_index: AsyncMock
    ) -> None:
        """Auto-sync can be switched off."""
        product_index.count.return_value = 0
        sync_pipeline = AsyncMock()
        service = ProductSearchService(
            embedding_service,
            product_index,
            SearchSettings(auto_sync_on_empty=False),
            sync_pipeline=sync_pipeline,
        )

        await service.search("dress")

        sync_pipeline.sync.assert_not_called()
        product_index.count.assert_not_called()
