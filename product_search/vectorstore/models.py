"""Vector store data models."""

from typing import Any

from pydantic import BaseModel, Field

from product_search.catalog.models import ProductRecord


class ProductDocument(ProductRecord):
    """A product as stored in the index: the catalog row plus its embedding.

    Attributes:
        embedding: Embedding of the product's canonical text.
    """

    embedding: list[float] = Field(description="Embedding vector")

    @classmethod
    def from_record(
        cls,
        record: ProductRecord,
        embedding: list[float],
    ) -> "ProductDocument":
        """Attach an embedding to a catalog record."""
        return cls(**record.model_dump(), embedding=embedding)

    def payload(self) -> dict[str, Any]:
        """Stored fields, without the vector."""
        return self.model_dump(exclude={"embedding"})


class IndexHit(BaseModel):
    """A raw hit from the index.

    Attributes:
        product: Stored product fields.
        score: Raw relevance score (higher is better, may exceed 1.0
            when boosts apply).
    """

    product: ProductRecord = Field(description="Stored product")
    score: float = Field(description="Raw relevance score")


class BoostClause(BaseModel):
    """Additive lexical boost.

    Documents whose ``field`` contains ``term`` as a word get ``weight``
    added to their score. Boosts never exclude documents.
    """

    field: str = Field(description="Text field to match")
    term: str = Field(description="Word to look for")
    weight: float = Field(gt=0, description="Score added on match")


class IndexQuery(BaseModel):
    """Backend-neutral retrieval request.

    Attributes:
        vector: Query embedding.
        k: Number of hits to return.
        num_candidates: Breadth of the approximate search.
        category: Exact-match category filter.
        boosts: Lexical boost clauses.
    """

    vector: list[float] = Field(description="Query embedding")
    k: int = Field(ge=1, description="Hits to return")
    num_candidates: int = Field(ge=1, description="Approximate search breadth")
    category: str | None = Field(default=None, description="Category filter")
    boosts: list[BoostClause] = Field(
        default_factory=list,
        description="Lexical boost clauses",
    )


class BulkIndexResult(BaseModel):
    """Outcome of a bulk upsert.

    Attributes:
        indexed: Documents written.
        errors: One message per rejected document.
    """

    indexed: int = Field(default=0, description="Documents written")
    errors: list[str] = Field(
        default_factory=list,
        description="Per-document error messages",
    )
