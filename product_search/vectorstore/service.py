"""Product index interface and Qdrant implementation."""

from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID, uuid5

from pydantic import ValidationError as PydanticValidationError
from qdrant_client import AsyncQdrantClient
from qdrant_client.http.exceptions import UnexpectedResponse
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FormulaQuery,
    MatchText,
    MatchValue,
    MultExpression,
    PayloadSchemaType,
    PointStruct,
    Prefetch,
    SearchParams,
    SumExpression,
    TextIndexParams,
    TextIndexType,
    TokenizerType,
    VectorParams,
)

from product_search.catalog.models import ProductRecord
from product_search.config import QdrantSettings, get_settings
from product_search.exceptions import ErrorCode, VectorStoreError
from product_search.logging_config import get_logger
from product_search.observability.metrics import track_vectorstore_operation
from product_search.vectorstore.models import (
    BulkIndexResult,
    IndexHit,
    IndexQuery,
    ProductDocument,
)

logger = get_logger(__name__)

# Namespace for deriving point ids from product ids
POINT_ID_NAMESPACE = UUID("6f1c3f0e-4a8b-5d2e-9b7a-2c4e8f1a0d35")

_TEXT_INDEX = TextIndexParams(
    type=TextIndexType.TEXT,
    tokenizer=TokenizerType.WORD,
    lowercase=True,
)

PAYLOAD_INDEXES: dict[str, Any] = {
    "id": PayloadSchemaType.KEYWORD,
    "name": _TEXT_INDEX,
    "description": _TEXT_INDEX,
    "category": PayloadSchemaType.KEYWORD,
    "brand": PayloadSchemaType.KEYWORD,
    "source": PayloadSchemaType.KEYWORD,
    "price": PayloadSchemaType.FLOAT,
}


def point_id(product_id: str) -> str:
    """Deterministic point id for a product id."""
    return str(uuid5(POINT_ID_NAMESPACE, product_id))


class ProductIndex(ABC):
    """Abstract base class for the product vector index."""

    @abstractmethod
    async def ensure_schema(self) -> None:
        """Create the index if it does not exist.

        Idempotent: calling it again is a no-op.

        Raises:
            VectorStoreError: If creation fails or an existing index
                declares a different dimension.
        """
        ...

    @abstractmethod
    async def count(self) -> int:
        """Number of indexed documents (0 when the index is missing)."""
        ...

    @abstractmethod
    async def upsert(self, document: ProductDocument) -> None:
        """Insert or replace one document.

        Raises:
            VectorStoreError: If the write fails or the embedding has the
                wrong dimension.
        """
        ...

    @abstractmethod
    async def bulk_upsert(
        self,
        documents: list[ProductDocument],
    ) -> BulkIndexResult:
        """Insert or replace many documents.

        Failures are reported per document; the rest are still written.
        """
        ...

    @abstractmethod
    async def query(self, request: IndexQuery) -> list[IndexHit]:
        """Run a retrieval request.

        Returns:
            Hits ordered by descending raw score.

        Raises:
            VectorStoreError: If the query fails.
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""
        return None


class QdrantProductIndex(ProductIndex):
    """Qdrant collection of product documents.

    Writes wait for the operation to be applied, so documents are
    searchable as soon as a write returns.
    """

    def __init__(
        self,
        settings: QdrantSettings | None = None,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize Qdrant product index.

        Args:
            settings: Qdrant configuration.
            client: Existing client (for testing).
        """
        self._settings = settings or get_settings().qdrant
        self._client = client
        self._owns_client = client is None

    @property
    def collection(self) -> str:
        """Collection name."""
        return self._settings.collection_name

    @property
    def dimension(self) -> int:
        """Declared embedding dimension."""
        return self._settings.embedding_dimension

    async def _get_client(self) -> AsyncQdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            api_key = None
            if self._settings.api_key:
                api_key = self._settings.api_key.get_secret_value()

            self._client = AsyncQdrantClient(
                url=self._settings.url,
                api_key=api_key,
            )
        return self._client

    async def close(self) -> None:
        """Close the Qdrant client."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    async def ensure_schema(self) -> None:
        """Create the collection and any missing payload indexes."""
        client = await self._get_client()

        with track_vectorstore_operation("ensure_schema"):
            try:
                if await client.collection_exists(self.collection):
                    existing = await self._verify_existing(client)
                else:
                    existing = await self._create_collection(client)

                missing = [name for name in PAYLOAD_INDEXES if name not in existing]
                for field_name in missing:
                    await client.create_payload_index(
                        collection_name=self.collection,
                        field_name=field_name,
                        field_schema=PAYLOAD_INDEXES[field_name],
                        wait=True,
                    )

                if missing:
                    logger.info(
                        f"Created payload indexes on {self.collection}",
                        extra={"fields": missing},
                    )

            except VectorStoreError:
                raise
            except Exception as e:
                raise VectorStoreError(
                    f"Failed to create collection: {e}",
                    code=ErrorCode.VECTOR_STORE_ERROR,
                    details={"collection": self.collection, "error": str(e)},
                ) from e

    async def _create_collection(self, client: AsyncQdrantClient) -> set[str]:
        """Create the collection; returns the payload fields already indexed."""
        try:
            await client.create_collection(
                collection_name=self.collection,
                vectors_config=VectorParams(
                    size=self.dimension,
                    distance=Distance.COSINE,
                ),
            )
        except UnexpectedResponse as e:
            # Another process created it between the check and here
            if e.status_code != 409:
                raise
            return await self._verify_existing(client)

        logger.info(
            f"Created collection: {self.collection}",
            extra={"dimensions": self.dimension},
        )
        return set()

    async def _verify_existing(self, client: AsyncQdrantClient) -> set[str]:
        """Check the declared vector size; returns the indexed payload fields.

        Raises:
            VectorStoreError: If the collection declares another size.
        """
        info = await client.get_collection(self.collection)
        vectors = info.config.params.vectors
        if isinstance(vectors, VectorParams) and vectors.size != self.dimension:
            raise VectorStoreError(
                f"Collection {self.collection} has dimension {vectors.size}, "
                f"expected {self.dimension}",
                code=ErrorCode.EMBEDDING_DIMENSION_MISMATCH,
                details={
                    "collection": self.collection,
                    "declared": vectors.size,
                    "expected": self.dimension,
                },
            )
        return set(info.payload_schema or {})

    async def count(self) -> int:
        """Exact document count."""
        client = await self._get_client()

        with track_vectorstore_operation("count"):
            try:
                if not await client.collection_exists(self.collection):
                    return 0
                result = await client.count(
                    collection_name=self.collection,
                    exact=True,
                )
                return result.count
            except Exception as e:
                raise VectorStoreError(
                    f"Failed to count documents: {e}",
                    code=ErrorCode.VECTOR_STORE_ERROR,
                    details={"collection": self.collection, "error": str(e)},
                ) from e

    def _check_dimension(self, document: ProductDocument) -> str | None:
        """Error message for a wrong-sized embedding, else None."""
        if len(document.embedding) == self.dimension:
            return None
        return (
            f"{document.id}: embedding has {len(document.embedding)} "
            f"dimensions, expected {self.dimension}"
        )

    def _to_point(self, document: ProductDocument) -> PointStruct:
        return PointStruct(
            id=point_id(document.id),
            vector=document.embedding,
            payload=document.payload(),
        )

    async def upsert(self, document: ProductDocument) -> None:
        """Write one document."""
        mismatch = self._check_dimension(document)
        if mismatch:
            raise VectorStoreError(
                mismatch,
                code=ErrorCode.EMBEDDING_DIMENSION_MISMATCH,
                details={"collection": self.collection, "product_id": document.id},
            )

        client = await self._get_client()

        with track_vectorstore_operation("upsert"):
            try:
                await client.upsert(
                    collection_name=self.collection,
                    points=[self._to_point(document)],
                    wait=True,
                )
            except Exception as e:
                raise VectorStoreError(
                    f"Failed to upsert document: {e}",
                    code=ErrorCode.VECTOR_STORE_ERROR,
                    details={
                        "collection": self.collection,
                        "product_id": document.id,
                        "error": str(e),
                    },
                ) from e

    async def bulk_upsert(
        self,
        documents: list[ProductDocument],
    ) -> BulkIndexResult:
        """Write documents in batches, collecting per-document errors."""
        if not documents:
            return BulkIndexResult()

        client = await self._get_client()
        errors: list[str] = []
        valid: list[ProductDocument] = []

        for document in documents:
            mismatch = self._check_dimension(document)
            if mismatch:
                errors.append(mismatch)
            else:
                valid.append(document)

        indexed = 0
        batch_size = self._settings.upsert_batch_size

        with track_vectorstore_operation("bulk_upsert"):
            for i in range(0, len(valid), batch_size):
                batch = valid[i : i + batch_size]
                try:
                    await client.upsert(
                        collection_name=self.collection,
                        points=[self._to_point(document) for document in batch],
                        wait=True,
                    )
                    indexed += len(batch)
                except Exception as e:
                    logger.error(
                        f"Bulk upsert batch failed: {e}",
                        extra={"collection": self.collection, "batch_size": len(batch)},
                    )
                    errors.extend(f"{document.id}: {e}" for document in batch)

        logger.debug(
            f"Upserted {indexed} documents",
            extra={"collection": self.collection, "errors": len(errors)},
        )
        return BulkIndexResult(indexed=indexed, errors=errors)

    def build_query_kwargs(self, request: IndexQuery) -> dict[str, Any]:
        """Translate an IndexQuery into ``query_points`` arguments.

        Without boosts this is a plain k-NN search. With boosts the k-NN
        search becomes a prefetch and the outer formula adds each boost's
        weight to the similarity score when its term matches.
        """
        search_params = SearchParams(hnsw_ef=request.num_candidates)

        category_filter = None
        if request.category:
            category_filter = Filter(
                must=[
                    FieldCondition(
                        key="category",
                        match=MatchValue(value=request.category),
                    )
                ]
            )

        if not request.boosts:
            return {
                "collection_name": self.collection,
                "query": request.vector,
                "query_filter": category_filter,
                "search_params": search_params,
                "limit": request.k,
                "with_payload": True,
            }

        boost_terms: list[Any] = [
            MultExpression(
                mult=[
                    boost.weight,
                    FieldCondition(key=boost.field, match=MatchText(text=boost.term)),
                ]
            )
            for boost in request.boosts
        ]

        return {
            "collection_name": self.collection,
            "prefetch": Prefetch(
                query=request.vector,
                filter=category_filter,
                params=search_params,
                limit=request.k,
            ),
            "query": FormulaQuery(formula=SumExpression(sum=["$score", *boost_terms])),
            "limit": request.k,
            "with_payload": True,
        }

    async def query(self, request: IndexQuery) -> list[IndexHit]:
        """Run a k-NN search with optional category filter and boosts."""
        client = await self._get_client()

        with track_vectorstore_operation("query"):
            try:
                response = await client.query_points(**self.build_query_kwargs(request))
            except Exception as e:
                raise VectorStoreError(
                    f"Failed to search: {e}",
                    code=ErrorCode.VECTOR_STORE_ERROR,
                    details={"collection": self.collection, "error": str(e)},
                ) from e

        hits: list[IndexHit] = []
        for point in response.points:
            try:
                product = ProductRecord.model_validate(dict(point.payload or {}))
            except PydanticValidationError:
                logger.warning(
                    "Skipping hit with invalid payload",
                    extra={"point_id": str(point.id)},
                )
                continue
            score = point.score if point.score is not None else 0.0
            hits.append(IndexHit(product=product, score=score))

        return hits
