"""CLI command for a one-shot catch-up sync from the subgraph.

Runs a single poll of every (or selected) event category against the
configured subgraph, without starting the API server or the polling loops.

Usage:
    python -m koma.cli.sync_events [OPTIONS]

Examples:
    # Catch up every category
    python -m koma.cli.sync_events

    # Only transfers, then write a snapshot
    python -m koma.cli.sync_events --category transfer --snapshot

    # Count what would be fetched (no database writes)
    python -m koma.cli.sync_events --dry-run

    # Verbose logging
    python -m koma.cli.sync_events -v
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace

import structlog
from pydantic import ValidationError

from koma.core import timezone  # noqa: F401
from koma.core.config import Settings, configure_logging
from koma.core.database import dispose_db_session, setup_db_session
from koma.services.indexer.categories import CATEGORIES
from koma.services.indexer.fetcher import fetch_events
from koma.services.indexer.service import IndexerService
from koma.services.indexer.watermark import BlockWatermark
from koma.services.subgraph.client import SubgraphClient
from koma.uow import create_uow_factory

logger = structlog.get_logger()

CATEGORY_NAMES = [category.name for category in CATEGORIES]


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(description="Sync KOMA token events from the subgraph once")

    parser.add_argument(
        "--category",
        action="append",
        choices=CATEGORY_NAMES,
        help="Event category to sync (repeatable, default: all)",
    )

    parser.add_argument(
        "--page-size",
        type=int,
        help="Subgraph page size (default: SUBGRAPH_PAGE_SIZE)",
    )

    parser.add_argument(
        "--snapshot",
        action="store_true",
        help="Append a token snapshot after syncing",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch events and report counts without database writes",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args(argv)


async def async_main(argv: list[str] | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (success), 1 (error), 2 (partial success)
    """
    args = parse_args(argv)

    try:
        settings = Settings()  # type: ignore[call-arg]
    except ValidationError as e:
        logger.error("sync_events.error", message="Invalid configuration", error=str(e))
        return 1

    if args.verbose:
        settings.log_level = "DEBUG"
    if args.page_size:
        settings.subgraph_page_size = args.page_size
    configure_logging(settings)

    if not settings.subgraph_url:
        logger.error("sync_events.error", message="SUBGRAPH_URL is not configured")
        return 1

    selected = args.category or CATEGORY_NAMES
    categories = [category for category in CATEGORIES if category.name in selected]

    logger.info(
        "sync_events.start",
        categories=[category.name for category in categories],
        dry_run=args.dry_run,
    )

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    uow_factory = create_uow_factory(session_factory)
    client = SubgraphClient(settings.subgraph_url, timeout=settings.subgraph_timeout_seconds)

    try:
        if args.dry_run:
            async with await uow_factory() as uow:
                watermark = await BlockWatermark.load(uow, categories)

            for category in categories:
                fetched = await fetch_events(
                    client,
                    category,
                    watermark.cursor(category.name),
                    settings.subgraph_page_size,
                )
                logger.info(
                    "sync_events.dry_run_category",
                    category=category.name,
                    from_block=watermark.cursor(category.name),
                    fetched=len(fetched),
                    complete=fetched.complete,
                )

            logger.info(
                "sync_events.dry_run_complete", message="DRY RUN COMPLETE - No changes made"
            )
            return 0

        indexer = IndexerService(client, uow_factory, settings, categories=categories)
        results = await indexer.poll_events()
        if not results:
            return 1

        for result in results:
            logger.info(
                "sync_events.category",
                category=result.category,
                fetched=result.fetched,
                stored=result.stored,
                skipped=result.skipped,
                failed=result.failed,
                cursor=result.cursor,
                error=result.error,
            )

        if args.snapshot:
            snapshot = await indexer.take_snapshot()
            if snapshot is None:
                return 2

        errored = [result for result in results if not result.ok]
        if len(errored) == len(results):
            return 1
        if errored or any(result.failed for result in results):
            return 2

        logger.info("sync_events.complete", watermark=indexer.watermark.value)
        return 0

    except KeyboardInterrupt:
        logger.warning("sync_events.interrupted", message="Sync interrupted by user")
        return 2

    except Exception as e:
        logger.error("sync_events.fatal_error", error=str(e), exc_info=True)
        return 1

    finally:
        await client.aclose()
        await dispose_db_session(session_factory)


def main(argv: list[str] | None = None) -> int:
    """Synchronous wrapper for async main."""
    return asyncio.run(async_main(argv))


if __name__ == "__main__":
    sys.exit(main())
