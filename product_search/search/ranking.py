"""Query construction and score post-processing.

Pure functions: no I/O, so every step of the ranking pipeline can be
exercised on its own.
"""

from product_search.search.models import SearchResult
from product_search.vectorstore.models import BoostClause, IndexHit, IndexQuery

# Color words looked for in queries; embeddings tend to under-weight them
COLOR_KEYWORDS = frozenset(
    {
        "red", "blue", "green", "black", "white", "yellow", "orange", "purple",
        "pink", "brown", "grey", "gray", "navy", "beige", "cream", "tan",
        "burgundy", "maroon", "olive", "teal", "coral", "gold", "silver",
        "charcoal", "ivory", "khaki", "lavender", "mint", "nude", "rust",
        "sage", "salmon", "turquoise", "wine", "indigo", "cyan", "magenta",
        "mauve", "peach", "plum", "taupe", "camel", "cobalt", "emerald",
        "forest", "hunter", "lilac", "moss", "mustard", "oatmeal", "rose",
        "slate", "stone", "terracotta",
    }
)

MIN_NUM_CANDIDATES = 100


def clamp_limit(limit: int | None, default: int, maximum: int) -> int:
    """Resolve a requested limit to ``[1, maximum]``."""
    if limit is None:
        limit = default
    return max(1, min(limit, maximum))


def fetch_limit_for(limit: int, maximum: int) -> int:
    """Over-fetch so the cutoff still leaves enough results."""
    return min(limit * 2, maximum)


def num_candidates_for(fetch_limit: int) -> int:
    """Approximate search breadth for a given number of hits."""
    return max(fetch_limit * 2, MIN_NUM_CANDIDATES)


def extract_colors(text: str) -> list[str]:
    """Color words in a query, in order of first appearance."""
    colors: list[str] = []
    for token in text.lower().split():
        if token in COLOR_KEYWORDS and token not in colors:
            colors.append(token)
    return colors


def build_color_boosts(
    colors: list[str],
    name_weight: float,
    description_weight: float,
) -> list[BoostClause]:
    """Name and description boosts for each color, name weighted higher."""
    boosts: list[BoostClause] = []
    for color in colors:
        boosts.append(BoostClause(field="name", term=color, weight=name_weight))
        boosts.append(
            BoostClause(field="description", term=color, weight=description_weight)
        )
    return boosts


def build_index_query(
    vector: list[float],
    fetch_limit: int,
    category: str | None = None,
    boosts: list[BoostClause] | None = None,
) -> IndexQuery:
    """Assemble the retrieval request.

    The k-NN clause is always present; the category filter and the boosts
    are independent and optional.
    """
    return IndexQuery(
        vector=vector,
        k=fetch_limit,
        num_candidates=num_candidates_for(fetch_limit),
        category=category or None,
        boosts=boosts or [],
    )


def normalize_scores(hits: list[IndexHit]) -> list[SearchResult]:
    """Scale raw scores by the best score of this result set.

    Boosted scores can sit far above 1.0, so dividing by the maximum
    brings them back to [0, 1]. Negative scores clamp to 0. Order is
    preserved.
    """
    max_score = max((hit.score for hit in hits), default=0.0)

    results: list[SearchResult] = []
    for hit in hits:
        similarity = max(hit.score, 0.0) / max_score if max_score > 0 else 0.0
        results.append(
            SearchResult(**hit.product.model_dump(), similarity=min(similarity, 1.0))
        )
    return results


def apply_relevance_cutoff(
    results: list[SearchResult],
    fraction: float,
) -> list[SearchResult]:
    """Drop results scoring below ``fraction`` of the top result.

    The first result is taken as the top. Nothing is dropped when the
    top similarity is zero.
    """
    if not results:
        return results

    top = results[0].similarity
    if top <= 0:
        return results

    threshold = top * fraction
    return [result for result in results if result.similarity >= threshold]
