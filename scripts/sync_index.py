#!/usr/bin/env python
"""Populate the product index from the catalog.

Usage:
    python -m scripts.sync_index
    python -m scripts.sync_index --backfill
    python -m scripts.sync_index --strict

Runs a full index sync by default. With --backfill, computes embeddings
and writes them onto the catalog rows instead. Prints the summary as
JSON. Exits non-zero on failure, and with --strict also when any
document was rejected.
"""

import argparse
import asyncio
import json
import sys

from product_search.api.services import build_services
from product_search.config import get_settings
from product_search.exceptions import ProductSearchError
from product_search.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


async def run(backfill: bool, strict: bool) -> int:
    """Run a sync or a backfill and report the outcome.

    Args:
        backfill: Write embeddings to the catalog instead of the index.
        strict: Treat per-document errors as failure.

    Returns:
        Process exit code.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level)

    services = build_services(settings)
    try:
        if backfill:
            if services.backfill is None:
                logger.error("Backfill is not configured", extra=services.problems)
                return 2
            summary = await services.backfill.run()
        else:
            if services.sync is None:
                logger.error("Sync is not configured", extra=services.problems)
                return 2
            summary = await services.sync.sync(trigger="cli")
    except ProductSearchError as e:
        logger.error(f"{'Backfill' if backfill else 'Sync'} failed: {e.message}")
        print(json.dumps(e.to_dict(), indent=2))
        return 1
    finally:
        await services.close()

    print(summary.model_dump_json(indent=2))

    if strict and summary.errors:
        logger.error(f"{len(summary.errors)} documents failed")
        return 1
    return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Populate the product search index from the catalog",
    )
    parser.add_argument(
        "--backfill",
        action="store_true",
        help="Store embeddings on catalog rows instead of indexing",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero when any document is rejected",
    )

    args = parser.parse_args()
    sys.exit(asyncio.run(run(backfill=args.backfill, strict=args.strict)))


if __name__ == "__main__":
    main()
