"""Vector store module."""

from product_search.vectorstore.models import (
    BoostClause,
    BulkIndexResult,
    IndexHit,
    IndexQuery,
    ProductDocument,
)
from product_search.vectorstore.service import ProductIndex, QdrantProductIndex

__all__ = [
    "BoostClause",
    "BulkIndexResult",
    "IndexHit",
    "IndexQuery",
    "ProductDocument",
    "ProductIndex",
    "QdrantProductIndex",
]
