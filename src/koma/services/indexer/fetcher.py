"""Paginated event fetching from the subgraph."""

from dataclasses import dataclass, field
from typing import Any

import structlog

from koma.services.indexer.categories import EventCategory
from koma.services.subgraph.client import SubgraphClient

logger = structlog.get_logger()

DEFAULT_PAGE_SIZE = 100


@dataclass
class FetchResult:
    """Events returned by one fetch, and whether pagination ran to the end."""

    events: list[dict[str, Any]] = field(default_factory=list)
    complete: bool = True

    def __len__(self) -> int:
        return len(self.events)


async def fetch_events(
    client: SubgraphClient,
    category: EventCategory,
    min_block: int,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> FetchResult:
    """Fetch every upstream event of a category above a block number.

    Pages through the subgraph with first/skip until a page comes back empty or
    shorter than ``page_size``. ``min_block`` stays fixed for the whole loop so
    offsets always refer to the same result set.

    A failing page stops pagination and the events gathered so far are
    returned. The error is logged, not raised: the cursor only advances past
    events that were persisted, so the missing tail is requested again on the
    next poll.

    Args:
        client: Subgraph client
        category: Event category descriptor
        min_block: Exclusive lower bound on blockNumber
        page_size: Number of entities requested per page

    Returns:
        Raw subgraph entities ordered by ascending block number; ``complete``
        is False when a page failed or was malformed and the result is truncated
    """
    result = FetchResult()
    events = result.events
    skip = 0

    while True:
        variables = {"first": page_size, "skip": skip, "blockNumber": min_block}

        try:
            data = await client.query(category.query, variables)
        except Exception as e:
            logger.error(
                "indexer.fetch.page_failed",
                category=category.name,
                min_block=min_block,
                skip=skip,
                fetched_so_far=len(events),
                error=str(e),
                error_type=type(e).__name__,
            )
            result.complete = False
            break

        page = data.get(category.data_key)
        if not isinstance(page, list):
            # Missing collection is malformed, only an empty list ends pagination
            logger.error(
                "indexer.fetch.malformed_page",
                category=category.name,
                skip=skip,
                page_type=type(page).__name__,
            )
            result.complete = False
            break

        if not page:
            break

        events.extend(page)
        logger.debug("indexer.fetch.page", category=category.name, skip=skip, count=len(page))

        if len(page) < page_size:
            break

        skip += page_size

    if events:
        logger.info(
            "indexer.fetch.complete",
            category=category.name,
            min_block=min_block,
            count=len(events),
            complete=result.complete,
        )
    return result
