"""Sync and backfill data models."""

from pydantic import BaseModel, Field


class SyncSummary(BaseModel):
    """Outcome of an index sync.

    Attributes:
        indexed: Documents written to the index.
        total: Rows read from the catalog.
        skipped: Rows that could not be turned into documents.
        errors: Per-document index errors.
    """

    indexed: int = Field(default=0, description="Documents written")
    total: int = Field(default=0, description="Catalog rows read")
    skipped: int = Field(default=0, description="Rows not turned into documents")
    errors: list[str] = Field(default_factory=list, description="Index errors")


class BackfillSummary(BaseModel):
    """Outcome of an embedding backfill into the catalog.

    Attributes:
        updated: Rows whose embedding was written.
        total: Rows read from the catalog.
        errors: Per-row write errors.
    """

    updated: int = Field(default=0, description="Rows updated")
    total: int = Field(default=0, description="Catalog rows read")
    errors: list[str] = Field(default_factory=list, description="Write errors")
