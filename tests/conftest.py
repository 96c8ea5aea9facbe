"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from product_search.api.app import app
from product_search.embeddings.models import EmbeddingResult


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for FastAPI app.

    Yields:
        AsyncClient configured for testing.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def _embedding(text: str, vector: list[float]) -> EmbeddingResult:
    return EmbeddingResult(
        text=text,
        embedding=vector,
        model="test-model",
        dimensions=len(vector),
    )


@pytest.fixture
def embedding_service() -> AsyncMock:
    """Mock embedding service returning one vector per input."""
    service = AsyncMock()
    service.embed = AsyncMock(return_value=_embedding("query", [0.1, 0.2, 0.3]))

    async def embed_batch(texts: list[str], *args: object) -> list[EmbeddingResult]:
        return [_embedding(text, [float(i), 0.5, 0.5]) for i, text in enumerate(texts)]

    service.embed_batch = AsyncMock(side_effect=embed_batch)
    service.model_name = "test-model"
    return service


@pytest.fixture
def product_index() -> AsyncMock:
    """Mock product index holding ten documents."""
    index = AsyncMock()
    index.ensure_schema = AsyncMock()
    index.count = AsyncMock(return_value=10)
    index.query = AsyncMock(return_value=[])
    index.bulk_upsert = AsyncMock()
    return index
