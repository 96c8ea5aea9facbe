"""Search against an in-process Qdrant collection."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from qdrant_client import AsyncQdrantClient

from product_search.catalog.models import ProductRecord
from product_search.config import QdrantSettings, SearchSettings
from product_search.search.service import ProductSearchService
from product_search.vectorstore.models import ProductDocument
from product_search.vectorstore.service import QdrantProductIndex

QUERY_VECTOR = [0.1, 0.2, 0.3]


@pytest.fixture
async def qdrant_index() -> AsyncGenerator[QdrantProductIndex, None]:
    """Product index backed by an in-memory Qdrant client."""
    client = AsyncQdrantClient(location=":memory:")
    index = QdrantProductIndex(
        settings=QdrantSettings(collection_name="products", embedding_dimension=3),
        client=client,
    )
    await index.ensure_schema()
    yield index
    await client.close()


async def _load(index: QdrantProductIndex, *documents: ProductDocument) -> None:
    result = await index.bulk_upsert(list(documents))
    assert result.errors == []


def _document(product_id: str, embedding: list[float], **fields: str) -> ProductDocument:
    return ProductDocument.from_record(ProductRecord(id=product_id, **fields), embedding)


class TestColorBoostedSearch:
    """Color words lift matching products above equally similar ones."""

    async def test_color_match_ranks_first(
        self, qdrant_index: QdrantProductIndex, embedding_service: AsyncMock
    ) -> None:
        """A blue product outranks a black one with the same embedding."""
        await _load(
            qdrant_index,
            _document("1", QUERY_VECTOR, name="black slim jeans", description="dark wash"),
            _document("2", QUERY_VECTOR, name="blue slim jeans", description="blue denim"),
            _document("3", QUERY_VECTOR, name="straight jeans", description="light blue wash"),
        )
        service = ProductSearchService(embedding_service, qdrant_index, SearchSettings())

        results = await service.search("blue jeans")

        ids = [r.id for r in results]
        assert ids[0] == "2"
        assert results[0].similarity == 1.0
        assert "1" not in ids
        assert all(0.0 <= r.similarity <= 1.0 for r in results)


class TestCategoryFilteredSearch:
    """A category restricts results to exact matches."""

    async def test_only_category_members_returned(
        self, qdrant_index: QdrantProductIndex, embedding_service: AsyncMock
    ) -> None:
        """Only the three shoes come back, best match first."""
        documents = [
            _document(f"s{i}", [0.1, 0.2, 0.3 - 0.05 * i], name=f"runner {i}", category="shoes")
            for i in range(3)
        ]
        documents += [
            _document(f"o{i}", QUERY_VECTOR, name=f"tee {i}", category="tops")
            for i in range(9)
        ]
        await _load(qdrant_index, *documents)
        service = ProductSearchService(embedding_service, qdrant_index, SearchSettings())

        results = await service.search("sneakers", category="shoes")

        assert 0 < len(results) <= 3
        assert all(r.category == "shoes" for r in results)
        similarities = [r.similarity for r in results]
        assert similarities == sorted(similarities, reverse=True)
        assert results[0].id == "s0"


class TestSchemaOnExistingCollection:
    """ensure_schema on a collection that already exists."""

    async def test_second_call_is_harmless(self, qdrant_index: QdrantProductIndex) -> None:
        """Running it again keeps the documents."""
        await _load(qdrant_index, _document("1", QUERY_VECTOR, name="tee"))

        await qdrant_index.ensure_schema()

        assert await qdrant_index.count() == 1
