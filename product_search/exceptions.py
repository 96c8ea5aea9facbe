"""Application exception hierarchy.

All custom exceptions inherit from ProductSearchError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "SRH-1000"
    CONFIGURATION_ERROR = "SRH-1001"

    # Catalog (system of record) errors (2xxx)
    CATALOG_ERROR = "SRH-2000"

    # Embedding errors (3xxx)
    EMBEDDING_SERVICE_ERROR = "SRH-3000"
    EMBEDDING_DIMENSION_MISMATCH = "SRH-3001"
    EMBEDDING_SHAPE_MISMATCH = "SRH-3002"
    EMBEDDING_COUNT_MISMATCH = "SRH-3003"
    EMBEDDING_COLD_START = "SRH-3004"

    # Vector store errors (4xxx)
    VECTOR_STORE_ERROR = "SRH-4000"

    # Search errors (5xxx)
    SEARCH_ERROR = "SRH-5000"
    SEARCH_UNAVAILABLE = "SRH-5001"

    # Sync errors (6xxx)
    SYNC_ERROR = "SRH-6000"


class ProductSearchError(Exception):
    """Base exception for all product search errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(ProductSearchError):
    """Configuration or environment error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class CatalogError(ProductSearchError):
    """System of record read or write error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CATALOG_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class EmbeddingError(ProductSearchError):
    """Embedding service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EMBEDDING_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)

    @property
    def is_cold_start(self) -> bool:
        """Whether the backend reported a model that is still warming up."""
        return self.code == ErrorCode.EMBEDDING_COLD_START


class VectorStoreError(ProductSearchError):
    """Vector store operation error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VECTOR_STORE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class SearchError(ProductSearchError):
    """Search pipeline error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SEARCH_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class SyncError(ProductSearchError):
    """Index sync or backfill error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SYNC_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)
