"""Product catalog (system of record) module."""

from product_search.catalog.models import ProductRecord
from product_search.catalog.repository import ProductCatalog, SupabaseProductCatalog

__all__ = [
    "ProductCatalog",
    "ProductRecord",
    "SupabaseProductCatalog",
]
