"""Search data models."""

from pydantic import BaseModel, Field

from product_search.catalog.models import ProductRecord


class SearchResult(ProductRecord):
    """A ranked product.

    Attributes:
        similarity: Score normalized against the best hit of the same
            request, in [0, 1]. Not comparable across requests.
    """

    similarity: float = Field(ge=0.0, le=1.0, description="Normalized score")


class RankedHits(BaseModel):
    """Ranking output with the figures needed for metrics and logs.

    Attributes:
        results: Final results, at most ``limit``.
        candidates: Hits returned by the index.
        cut: Hits dropped by the relevance cutoff.
        top_raw_score: Highest raw index score.
    """

    results: list[SearchResult] = Field(default_factory=list)
    candidates: int = Field(default=0)
    cut: int = Field(default=0)
    top_raw_score: float = Field(default=0.0)
