"""Index sync and embedding backfill module."""

from product_search.sync.models import BackfillSummary, SyncSummary
from product_search.sync.pipeline import (
    BackfillPipeline,
    SyncPipeline,
    embed_records,
    parse_records,
)

__all__ = [
    "BackfillPipeline",
    "BackfillSummary",
    "SyncPipeline",
    "SyncSummary",
    "embed_records",
    "parse_records",
]
