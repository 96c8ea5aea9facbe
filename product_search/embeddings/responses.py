"""Embedding response envelopes.

Backends disagree on how they wrap vectors. Each known envelope is a
model with its own ``vectors()`` accessor; ``parse_embedding_response``
tries them in priority order and accepts the first whose element count
matches the request.
"""

from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, Field, StrictFloat, StrictInt, model_validator
from pydantic import ValidationError as PydanticValidationError

from product_search.exceptions import EmbeddingError, ErrorCode
from product_search.logging_config import get_logger

logger = get_logger(__name__)

# Elements must already be JSON numbers; strings and booleans are rejected
Vector = Annotated[list[StrictFloat | StrictInt], Field(min_length=1)]


class EmbeddingEnvelope(BaseModel):
    """Base class for a known response shape."""

    # Shape only valid when a single text was embedded
    single_only: ClassVar[bool] = False

    def vectors(self) -> list[list[float]]:
        """Return the vectors in request order."""
        raise NotImplementedError


class _EmbeddingEntry(BaseModel):
    embedding: Vector


class TextEmbeddingEnvelope(EmbeddingEnvelope):
    """``{"text_embedding": [{"embedding": [...]}, ...]}``"""

    text_embedding: list[_EmbeddingEntry]

    def vectors(self) -> list[list[float]]:
        return [entry.embedding for entry in self.text_embedding]


class _IndexedEmbeddingEntry(BaseModel):
    embedding: Vector
    index: int | None = None


class DataEnvelope(EmbeddingEnvelope):
    """``{"data": [{"embedding": [...], "index": 0}, ...]}`` (OpenAI style).

    Indices, when given, must be exactly ``0..n-1`` in some order.
    """

    data: list[_IndexedEmbeddingEntry]

    @model_validator(mode="after")
    def check_indices(self) -> "DataEnvelope":
        indices = [entry.index for entry in self.data]
        if all(index is None for index in indices):
            return self
        if sorted(i for i in indices if i is not None) != list(range(len(indices))):
            raise ValueError("data indices must be 0..n-1 without gaps or repeats")
        return self

    def vectors(self) -> list[list[float]]:
        entries = self.data
        if entries and entries[0].index is not None:
            entries = sorted(entries, key=lambda entry: entry.index or 0)
        return [entry.embedding for entry in entries]


class BareVectorsEnvelope(EmbeddingEnvelope):
    """``{"embeddings": [[...], [...]]}``"""

    embeddings: list[Vector]

    def vectors(self) -> list[list[float]]:
        return list(self.embeddings)


class _InferenceResult(BaseModel):
    inferred_value: Vector | None = None
    predicted_value: Vector | None = None
    embedding: Vector | None = None

    @model_validator(mode="after")
    def check_has_vector(self) -> "_InferenceResult":
        if self.vector is None:
            raise ValueError("inference result carries no vector")
        return self

    @property
    def vector(self) -> list[float] | None:
        return self.inferred_value or self.predicted_value or self.embedding


class InferenceResultsEnvelope(EmbeddingEnvelope):
    """``{"inference_results": [{"inferred_value": [...]}, ...]}``"""

    inference_results: list[_InferenceResult]

    def vectors(self) -> list[list[float]]:
        return [result.vector or [] for result in self.inference_results]


class SingleVectorEnvelope(EmbeddingEnvelope):
    """``{"inferred_value": [...]}`` or ``{"embedding": [...]}``"""

    single_only: ClassVar[bool] = True

    inferred_value: Vector | None = None
    embedding: Vector | None = None

    @model_validator(mode="after")
    def check_has_vector(self) -> "SingleVectorEnvelope":
        if self.inferred_value is None and self.embedding is None:
            raise ValueError("response carries no vector")
        return self

    def vectors(self) -> list[list[float]]:
        return [self.inferred_value or self.embedding or []]


RESPONSE_ENVELOPES: tuple[type[EmbeddingEnvelope], ...] = (
    TextEmbeddingEnvelope,
    DataEnvelope,
    BareVectorsEnvelope,
    InferenceResultsEnvelope,
    SingleVectorEnvelope,
)


def parse_embedding_response(
    payload: Any,
    expected_count: int,
) -> list[list[float]]:
    """Extract vectors from an embedding response.

    Args:
        payload: Decoded JSON body.
        expected_count: Number of texts in the request.

    Returns:
        Exactly ``expected_count`` vectors in request order.

    Raises:
        EmbeddingError: If no known envelope matches.
    """
    if isinstance(payload, dict):
        for envelope_type in RESPONSE_ENVELOPES:
            if envelope_type.single_only and expected_count != 1:
                continue
            try:
                envelope = envelope_type.model_validate(payload)
            except PydanticValidationError:
                continue

            vectors = envelope.vectors()
            if len(vectors) == expected_count:
                return vectors

        response_keys = sorted(str(key) for key in payload)
    else:
        response_keys = []

    logger.error(
        "Unexpected embedding response shape",
        extra={
            "response_keys": response_keys,
            "response_type": type(payload).__name__,
            "expected_count": expected_count,
        },
    )
    raise EmbeddingError(
        "Unexpected embedding response shape",
        code=ErrorCode.EMBEDDING_SHAPE_MISMATCH,
        details={
            "response_keys": response_keys,
            "expected_count": expected_count,
        },
    )
