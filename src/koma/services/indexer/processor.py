"""Generic category processor.

Mirrors one event category: fetch above the category cursor, decode each raw
event, insert it through the deduplicating gate, then advance the cursor once
the batch is committed.
"""

from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from koma.models.system_alert import AlertSeverity
from koma.services.exceptions import EventDecodeError
from koma.services.indexer.alerts import record_alert
from koma.services.indexer.categories import EventCategory
from koma.services.indexer.fetcher import DEFAULT_PAGE_SIZE, fetch_events
from koma.services.indexer.watermark import BlockWatermark
from koma.services.subgraph.client import SubgraphClient

logger = structlog.get_logger()


@dataclass
class CategoryResult:
    """Outcome of one processor run."""

    category: str
    fetched: int = 0
    stored: int = 0
    skipped: int = 0
    failed: int = 0
    deferred: int = 0
    cursor: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _raw_block_number(raw: dict[str, Any]) -> int | None:
    try:
        return int(raw["blockNumber"])
    except (KeyError, TypeError, ValueError):
        return None


async def process_category(
    category: EventCategory,
    client: SubgraphClient,
    uow_factory,
    watermark: BlockWatermark,
    page_size: int = DEFAULT_PAGE_SIZE,
    halt_on_decode_error: bool = True,
) -> CategoryResult:
    """Fetch and persist new events of one category.

    Events are handled in upstream (ascending block) order inside one
    transaction; each insert runs in a savepoint so a failing row does not
    abort the rest. Already-stored events count as skipped.

    The cursor advances to the highest block handled, but never past a failed
    event: an insert failure always holds it just below the failed block, and
    a decode failure does so when ``halt_on_decode_error`` is set. A truncated
    fetch holds it below the last fetched block. Events in blocks after a held
    block are left unprocessed; they and the held events are fetched again on
    the next poll.

    Never raises; a category-wide failure is reported in ``CategoryResult.error``.

    Args:
        category: Event category descriptor
        client: Subgraph client
        uow_factory: UnitOfWork factory
        watermark: Shared block watermark
        page_size: Subgraph page size
        halt_on_decode_error: Hold the cursor below undecodable events

    Returns:
        Counters for this run
    """
    min_block = watermark.cursor(category.name)
    result = CategoryResult(category=category.name, cursor=min_block)
    log = logger.bind(category=category.name)

    try:
        fetched = await fetch_events(client, category, min_block, page_size)
        events = fetched.events
        result.fetched = len(events)
        if not events:
            return result

        highest = min_block
        ceiling: int | None = None
        decode_errors: list[str] = []

        def hold_below(block_number: int | None) -> None:
            nonlocal ceiling
            # Unknown block: stay below the last block that was handled
            limit = (block_number if block_number is not None else highest) - 1
            ceiling = limit if ceiling is None else min(ceiling, limit)

        if not fetched.complete:
            # The missing tail may hold more events of the last fetched block
            hold_below(_raw_block_number(events[-1]))

        async with await uow_factory() as uow:
            repository = uow.events_for(category.model)

            for position, raw in enumerate(events):
                block_number = _raw_block_number(raw)
                if ceiling is not None and block_number is not None and block_number > ceiling + 1:
                    # Past a held block: leave the rest for the retry
                    result.deferred = len(events) - position
                    break

                try:
                    values = category.decode(raw)
                except EventDecodeError as e:
                    result.failed += 1
                    decode_errors.append(str(e))
                    log.error("indexer.event.decode_failed", event_id=raw.get("id"), error=str(e))
                    if halt_on_decode_error:
                        hold_below(block_number)
                    continue

                try:
                    async with uow.session.begin_nested():
                        inserted = await repository.insert_if_absent(values)
                except SQLAlchemyError as e:
                    result.failed += 1
                    log.error(
                        "indexer.event.insert_failed",
                        tx_hash=values["tx_hash"],
                        log_index=values["log_index"],
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    hold_below(values["block_number"])
                    continue

                if inserted:
                    result.stored += 1
                    log.debug(
                        "indexer.event.stored",
                        tx_hash=values["tx_hash"],
                        log_index=values["log_index"],
                        block_number=values["block_number"],
                    )
                else:
                    result.skipped += 1

                highest = max(highest, values["block_number"])

        # Committed: events up to ``highest`` are durable
        target = highest if ceiling is None else min(highest, ceiling)
        watermark.advance(category.name, target)
        result.cursor = watermark.cursor(category.name)

        log.info(
            "indexer.category.processed",
            fetched=result.fetched,
            stored=result.stored,
            skipped=result.skipped,
            failed=result.failed,
            deferred=result.deferred,
            cursor=result.cursor,
        )

        if decode_errors:
            await record_alert(
                uow_factory,
                AlertSeverity.WARNING,
                f"Undecodable {category.name} events",
                f"{len(decode_errors)} event(s) could not be decoded: "
                + "; ".join(decode_errors[:5]),
            )

    except Exception as e:
        result.error = str(e)
        log.error(
            "indexer.category.failed",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )

    return result
