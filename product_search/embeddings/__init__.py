"""Embedding service module."""

from product_search.embeddings.models import EmbeddingResult, InputType
from product_search.embeddings.responses import parse_embedding_response
from product_search.embeddings.service import (
    EmbeddingService,
    HTTPEmbeddingService,
    InferenceEmbeddingService,
    OpenAIEmbeddingService,
    create_embedding_service,
)

__all__ = [
    "EmbeddingResult",
    "EmbeddingService",
    "HTTPEmbeddingService",
    "InferenceEmbeddingService",
    "InputType",
    "OpenAIEmbeddingService",
    "create_embedding_service",
    "parse_embedding_response",
]
