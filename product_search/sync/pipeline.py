"""Catalog to index sync, and embedding backfill into the catalog."""

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from product_search.catalog.models import ProductRecord
from product_search.catalog.repository import ProductCatalog
from product_search.embeddings.models import InputType
from product_search.embeddings.service import EmbeddingService
from product_search.exceptions import CatalogError, ErrorCode, SyncError
from product_search.logging_config import get_logger
from product_search.observability.metrics import track_sync_run
from product_search.sync.models import BackfillSummary, SyncSummary
from product_search.vectorstore.models import ProductDocument
from product_search.vectorstore.service import ProductIndex

logger = get_logger(__name__)


def parse_records(rows: list[dict[str, Any]]) -> list[ProductRecord]:
    """Validate catalog rows, skipping the ones that cannot be used."""
    records: list[ProductRecord] = []
    for row in rows:
        try:
            records.append(ProductRecord.model_validate(row))
        except PydanticValidationError as e:
            product_id = row.get("id") if isinstance(row, dict) else None
            logger.warning(
                "Skipping invalid product row",
                extra={"product_id": product_id, "errors": e.error_count()},
            )
    return records


async def embed_records(
    embedding_service: EmbeddingService,
    records: list[ProductRecord],
) -> list[list[float]]:
    """Embed each record's canonical text.

    Raises:
        SyncError: If the number of embeddings differs from the number
            of records.
    """
    texts = [record.embedding_text() for record in records]
    results = await embedding_service.embed_batch(texts, InputType.INGEST)

    if len(results) != len(records):
        raise SyncError(
            f"Embedding service returned {len(results)} embeddings, "
            f"expected {len(records)}",
            code=ErrorCode.EMBEDDING_COUNT_MISMATCH,
            details={"received": len(results), "expected": len(records)},
        )

    return [result.embedding for result in results]


class SyncPipeline:
    """Fills the product index from the catalog.

    Reads every product, embeds its canonical text and bulk-upserts the
    documents. Embedding is all-or-nothing; indexing reports errors per
    document.
    """

    def __init__(
        self,
        catalog: ProductCatalog,
        embedding_service: EmbeddingService,
        index: ProductIndex,
    ) -> None:
        """Initialize the sync pipeline.

        Args:
            catalog: System of record.
            embedding_service: Service for corpus embeddings.
            index: Product vector index.
        """
        self._catalog = catalog
        self._embedding_service = embedding_service
        self._index = index

    async def sync(self, trigger: str = "manual") -> SyncSummary:
        """Run a full sync.

        Args:
            trigger: Label for metrics and logs.

        Returns:
            SyncSummary with counts and per-document errors.

        Raises:
            CatalogError: If products cannot be read.
            EmbeddingError: If embedding fails.
            SyncError: If embedding returns the wrong number of vectors.
            VectorStoreError: If the index schema cannot be ensured.
        """
        logger.info("Starting index sync", extra={"trigger": trigger})

        try:
            summary = await self._run()
        except Exception:
            track_sync_run(trigger=trigger, indexed=0, errors=0, success=False)
            raise

        track_sync_run(
            trigger=trigger,
            indexed=summary.indexed,
            errors=len(summary.errors),
        )
        logger.info(
            "Index sync finished",
            extra={
                "trigger": trigger,
                "indexed": summary.indexed,
                "total": summary.total,
                "skipped": summary.skipped,
                "errors": len(summary.errors),
            },
        )
        return summary

    async def _run(self) -> SyncSummary:
        rows = await self._catalog.fetch_products()
        records = parse_records(rows)
        total = len(rows)

        if not records:
            await self._index.ensure_schema()
            return SyncSummary(indexed=0, total=total, skipped=total)

        embeddings = await embed_records(self._embedding_service, records)
        documents = [
            ProductDocument.from_record(record, embedding)
            for record, embedding in zip(records, embeddings, strict=True)
        ]

        await self._index.ensure_schema()
        result = await self._index.bulk_upsert(documents)

        return SyncSummary(
            indexed=result.indexed,
            total=total,
            skipped=total - len(documents),
            errors=result.errors,
        )


class BackfillPipeline:
    """Writes product embeddings back onto the catalog rows.

    Uses the same canonical text and ingest mode as the index sync.
    A failed row update is recorded and the rest continue.
    """

    def __init__(
        self,
        catalog: ProductCatalog,
        embedding_service: EmbeddingService,
    ) -> None:
        self._catalog = catalog
        self._embedding_service = embedding_service

    async def run(self) -> BackfillSummary:
        """Embed every product and store the vectors in the catalog.

        Raises:
            CatalogError: If products cannot be read.
            EmbeddingError: If embedding fails.
            SyncError: If embedding returns the wrong number of vectors.
        """
        rows = await self._catalog.fetch_products()
        records = parse_records(rows)
        if not records:
            return BackfillSummary(total=len(rows))

        embeddings = await embed_records(self._embedding_service, records)

        updated = 0
        errors: list[str] = []
        for record, embedding in zip(records, embeddings, strict=True):
            try:
                await self._catalog.update_embedding(record.id, embedding)
                updated += 1
            except CatalogError as e:
                logger.error(
                    f"Embedding update failed for {record.id}: {e.message}",
                    extra={"product_id": record.id},
                )
                errors.append(f"{record.id}: {e.message}")

        logger.info(
            f"Backfilled embeddings for {updated} of {len(rows)} products",
            extra={"errors": len(errors)},
        )
        return BackfillSummary(updated=updated, total=len(rows), errors=errors)
