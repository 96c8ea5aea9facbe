"""Product search (ranking pipeline) module."""

from product_search.search.models import RankedHits, SearchResult
from product_search.search.service import ProductSearchService

__all__ = [
    "ProductSearchService",
    "RankedHits",
    "SearchResult",
]
