"""Tests for application configuration."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from product_search.config import (
    CatalogSettings,
    EmbeddingProvider,
    EmbeddingSettings,
    Environment,
    QdrantSettings,
    SearchSettings,
    Settings,
    get_settings,
)


class TestEmbeddingSettings:
    """Tests for embedding configuration."""

    def test_default_values(self) -> None:
        """Defaults target a local inference endpoint."""
        settings = EmbeddingSettings()
        assert settings.provider == EmbeddingProvider.INFERENCE
        assert settings.model == "multilingual-e5-small"
        assert settings.batch_size == 50
        assert settings.max_input_chars == 8191
        assert settings.cold_start_backoff_seconds == 45.0

    def test_env_override(self) -> None:
        """Environment variables override defaults."""
        with patch.dict(
            os.environ,
            {"EMBEDDING_PROVIDER": "openai", "EMBEDDING_BATCH_SIZE": "10"},
        ):
            settings = EmbeddingSettings()
            assert settings.provider == EmbeddingProvider.OPENAI
            assert settings.batch_size == 10

    def test_api_key_is_secret_when_set(self) -> None:
        """API key should be masked when set."""
        with patch.dict(os.environ, {"EMBEDDING_API_KEY": "secret-key"}):
            settings = EmbeddingSettings()
            assert settings.api_key is not None
            assert "secret-key" not in str(settings.api_key)
            assert settings.api_key.get_secret_value() == "secret-key"


class TestQdrantSettings:
    """Tests for Qdrant configuration."""

    def test_default_values(self) -> None:
        """Default values for Qdrant."""
        settings = QdrantSettings()
        assert settings.url == "http://localhost:6333"
        assert settings.api_key is None
        assert settings.collection_name == "products"
        assert settings.embedding_dimension == 384


class TestSearchSettings:
    """Tests for ranking configuration."""

    def test_default_values(self) -> None:
        """Defaults match the documented ranking constants."""
        settings = SearchSettings()
        assert settings.default_limit == 20
        assert settings.max_limit == 500
        assert settings.cutoff_fraction == 0.4
        assert settings.name_boost == 15.0
        assert settings.description_boost == 10.0
        assert settings.auto_sync_on_empty is True

    def test_env_override(self) -> None:
        """Cutoff can be tuned from the environment."""
        with patch.dict(os.environ, {"SEARCH_CUTOFF_FRACTION": "0.5"}):
            assert SearchSettings().cutoff_fraction == 0.5

    @pytest.mark.parametrize("field", ["name_boost", "description_boost"])
    @pytest.mark.parametrize("weight", [0, -1.0])
    def test_boost_weights_must_be_positive(self, field: str, weight: float) -> None:
        """Zero or negative boost weights fail at load time."""
        with pytest.raises(ValidationError, match=field):
            SearchSettings(**{field: weight})


class TestCatalogSettings:
    """Tests for catalog configuration."""

    def test_unconfigured_by_default(self) -> None:
        """Supabase credentials are not set by default."""
        settings = CatalogSettings()
        assert settings.supabase_url is None
        assert settings.supabase_key is None
        assert settings.table == "products"
        assert settings.page_size == 1000


class TestSettings:
    """Tests for main application settings."""

    def test_default_environment(self) -> None:
        """Default environment is development."""
        settings = Settings()
        assert settings.environment == Environment.DEVELOPMENT

    def test_nested_settings_loaded(self) -> None:
        """Nested settings are initialized."""
        settings = Settings()
        assert isinstance(settings.embedding, EmbeddingSettings)
        assert isinstance(settings.qdrant, QdrantSettings)
        assert isinstance(settings.search, SearchSettings)
        assert isinstance(settings.catalog, CatalogSettings)

    def test_environment_enum(self) -> None:
        """Environment can be set via string."""
        with patch.dict(os.environ, {"ENVIRONMENT": "production"}):
            settings = Settings()
            assert settings.environment == Environment.PRODUCTION


class TestGetSettings:
    """Tests for settings singleton."""

    def test_caching(self) -> None:
        """Settings are cached."""
        get_settings.cache_clear()
        settings1 = get_settings()
        settings2 = get_settings()
        assert settings1 is settings2
