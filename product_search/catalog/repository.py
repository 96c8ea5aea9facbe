"""Product catalog interface and Supabase implementation."""

from abc import ABC, abstractmethod
from typing import Any

from supabase import AsyncClient, acreate_client

from product_search.config import CatalogSettings, get_settings
from product_search.exceptions import CatalogError, ConfigurationError, ErrorCode
from product_search.logging_config import get_logger

logger = get_logger(__name__)

PRODUCT_COLUMNS = "id, name, description, image_url, price, category, brand, source, metadata"


class ProductCatalog(ABC):
    """Abstract base class for the product system of record."""

    @abstractmethod
    async def fetch_products(self) -> list[dict[str, Any]]:
        """Fetch every product row.

        Returns:
            Raw product rows.

        Raises:
            CatalogError: If the read fails.
        """
        ...

    @abstractmethod
    async def update_embedding(
        self,
        product_id: str,
        embedding: list[float],
    ) -> None:
        """Store an embedding on a product row.

        Args:
            product_id: Product identifier.
            embedding: Embedding vector.

        Raises:
            CatalogError: If the write fails.
        """
        ...


class SupabaseProductCatalog(ProductCatalog):
    """Products table in Supabase (Postgres over PostgREST)."""

    def __init__(
        self,
        settings: CatalogSettings | None = None,
        client: AsyncClient | None = None,
    ) -> None:
        """Initialize the Supabase catalog.

        Args:
            settings: Catalog configuration.
            client: Existing client (for testing).

        Raises:
            ConfigurationError: If no client is given and Supabase
                credentials are missing.
        """
        self._settings = settings or get_settings().catalog
        self._client = client

        if client is None and not (
            self._settings.supabase_url and self._settings.supabase_key
        ):
            raise ConfigurationError(
                "CATALOG_SUPABASE_URL and CATALOG_SUPABASE_KEY must be set",
                details={"table": self._settings.table},
            )

    async def _get_client(self) -> AsyncClient:
        """Get or create Supabase client."""
        if self._client is None:
            url = self._settings.supabase_url
            key = self._settings.supabase_key
            if not url or key is None:
                raise ConfigurationError("Supabase catalog is not configured")
            self._client = await acreate_client(url, key.get_secret_value())
        return self._client

    async def fetch_products(self) -> list[dict[str, Any]]:
        """Fetch all products, one page at a time.

        Pages are ordered by id so they stay stable while paging; paging
        stops at the first short page.
        """
        client = await self._get_client()
        page_size = self._settings.page_size
        rows: list[dict[str, Any]] = []
        offset = 0

        try:
            while True:
                response = await (
                    client.table(self._settings.table)
                    .select(PRODUCT_COLUMNS)
                    .order("id")
                    .range(offset, offset + page_size - 1)
                    .execute()
                )
                page = response.data if isinstance(response.data, list) else []
                rows.extend(page)

                if len(page) < page_size:
                    break
                offset += page_size

        except Exception as e:
            raise CatalogError(
                f"Failed to fetch products: {e}",
                code=ErrorCode.CATALOG_ERROR,
                details={"table": self._settings.table, "offset": offset},
            ) from e

        logger.info(
            f"Fetched {len(rows)} products",
            extra={"table": self._settings.table},
        )
        return rows

    async def update_embedding(
        self,
        product_id: str,
        embedding: list[float],
    ) -> None:
        """Write an embedding onto one product row."""
        client = await self._get_client()

        try:
            await (
                client.table(self._settings.table)
                .update({"embedding": embedding})
                .eq("id", product_id)
                .execute()
            )
        except Exception as e:
            raise CatalogError(
                f"Failed to update embedding: {e}",
                code=ErrorCode.CATALOG_ERROR,
                details={"table": self._settings.table, "product_id": product_id},
            ) from e
