"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class EmbeddingProvider(str, Enum):
    """Embedding backend selection."""

    INFERENCE = "inference"
    OPENAI = "openai"


class EmbeddingSettings(BaseSettings):
    """Embedding service configuration.

    Supports a managed inference endpoint (default) and a direct
    OpenAI-compatible embedding API.
    """

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    provider: EmbeddingProvider = Field(
        default=EmbeddingProvider.INFERENCE,
        description="Embedding backend to use",
    )
    base_url: str = Field(
        default="http://localhost:9200",
        description="Embedding service base URL",
    )
    inference_id: str | None = Field(
        default=None,
        description="Inference endpoint id (inference provider only)",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="API key for the embedding backend",
    )
    model: str = Field(
        default="multilingual-e5-small",
        description="Embedding model name",
    )
    dimensions: int | None = Field(
        default=None,
        description="Requested output dimensions (openai provider only)",
    )
    batch_size: int = Field(
        default=50,
        ge=1,
        description="Maximum texts per embedding request",
    )
    max_input_chars: int = Field(
        default=8191,
        ge=1,
        description="Input texts are truncated to this many characters",
    )
    cold_start_backoff_seconds: float = Field(
        default=45.0,
        ge=0.0,
        description="Wait before the single retry after a cold-start error",
    )
    timeout: float = Field(
        default=150.0,
        description="HTTP timeout in seconds (covers server-side cold starts)",
    )


class QdrantSettings(BaseSettings):
    """Qdrant vector database configuration."""

    model_config = SettingsConfigDict(env_prefix="QDRANT_")

    url: str = Field(
        default="http://localhost:6333",
        description="Qdrant server URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Qdrant API key (optional for local)",
    )
    collection_name: str = Field(
        default="products",
        description="Product collection name",
    )
    embedding_dimension: int = Field(
        default=384,
        gt=0,
        description="Vector size declared when the collection is created",
    )
    upsert_batch_size: int = Field(
        default=256,
        ge=1,
        description="Points per bulk upsert request",
    )


class SearchSettings(BaseSettings):
    """Ranking pipeline tuning."""

    model_config = SettingsConfigDict(env_prefix="SEARCH_")

    default_limit: int = Field(
        default=20,
        ge=1,
        description="Results returned when no limit is given",
    )
    max_limit: int = Field(
        default=500,
        ge=1,
        description="Upper bound for requested and fetched results",
    )
    cutoff_fraction: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Drop results below this fraction of the top similarity",
    )
    name_boost: float = Field(
        default=15.0,
        gt=0.0,
        description="Score boost for a color term in the product name",
    )
    description_boost: float = Field(
        default=10.0,
        gt=0.0,
        description="Score boost for a color term in the description",
    )
    auto_sync_on_empty: bool = Field(
        default=True,
        description="Run a best-effort sync when the index is empty",
    )


class CatalogSettings(BaseSettings):
    """System of record (Supabase products table) configuration."""

    model_config = SettingsConfigDict(env_prefix="CATALOG_")

    supabase_url: str | None = Field(
        default=None,
        description="Supabase project URL",
    )
    supabase_key: SecretStr | None = Field(
        default=None,
        description="Supabase service role key",
    )
    table: str = Field(
        default="products",
        description="Products table name",
    )
    page_size: int = Field(
        default=1000,
        ge=1,
        description="Rows fetched per page during sync",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    api_port: int = Field(
        default=8000,
        description="API server port",
    )

    # Nested settings
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
