"""Service wiring for the API process.

Clients are built once at startup from settings and shared by every
request. A component whose configuration is incomplete is left unset;
the endpoints that need it answer 503.
"""

from product_search.catalog.repository import ProductCatalog, SupabaseProductCatalog
from product_search.config import Settings
from product_search.embeddings.service import EmbeddingService, create_embedding_service
from product_search.exceptions import ConfigurationError
from product_search.logging_config import get_logger
from product_search.search.service import ProductSearchService
from product_search.sync.pipeline import BackfillPipeline, SyncPipeline
from product_search.vectorstore.service import ProductIndex, QdrantProductIndex

logger = get_logger(__name__)


class SearchServices:
    """Process-wide service instances.

    Attributes:
        embedding_service: Embedding backend, if configured.
        index: Product vector index.
        catalog: System of record, if configured.
        search: Ranking pipeline (needs embeddings and index).
        sync: Index sync (needs catalog, embeddings and index).
        backfill: Embedding backfill (needs catalog and embeddings).
    """

    def __init__(
        self,
        embedding_service: EmbeddingService | None = None,
        index: ProductIndex | None = None,
        catalog: ProductCatalog | None = None,
        search: ProductSearchService | None = None,
        sync: SyncPipeline | None = None,
        backfill: BackfillPipeline | None = None,
        problems: dict[str, str] | None = None,
    ) -> None:
        self.embedding_service = embedding_service
        self.index = index
        self.catalog = catalog
        self.search = search
        self.sync = sync
        self.backfill = backfill
        self.problems = problems or {}

    async def close(self) -> None:
        """Close owned clients."""
        if self.embedding_service is not None:
            await self.embedding_service.close()
        if self.index is not None:
            await self.index.close()


def build_services(settings: Settings) -> SearchServices:
    """Construct every component the settings allow.

    Args:
        settings: Application settings.

    Returns:
        SearchServices; missing components are recorded in ``problems``.
    """
    problems: dict[str, str] = {}

    embedding_service: EmbeddingService | None = None
    try:
        embedding_service = create_embedding_service(settings.embedding)
    except ConfigurationError as e:
        problems["embedding"] = e.message

    index = QdrantProductIndex(settings.qdrant)

    catalog: ProductCatalog | None = None
    try:
        catalog = SupabaseProductCatalog(settings.catalog)
    except ConfigurationError as e:
        problems["catalog"] = e.message

    sync = None
    backfill = None
    if catalog is not None and embedding_service is not None:
        sync = SyncPipeline(catalog, embedding_service, index)
        backfill = BackfillPipeline(catalog, embedding_service)

    search = None
    if embedding_service is not None:
        search = ProductSearchService(
            embedding_service,
            index,
            settings=settings.search,
            sync_pipeline=sync,
        )

    for component, problem in problems.items():
        logger.warning(
            f"{component} not configured: {problem}",
            extra={"component": component},
        )

    return SearchServices(
        embedding_service=embedding_service,
        index=index,
        catalog=catalog,
        search=search,
        sync=sync,
        backfill=backfill,
        problems=problems,
    )
