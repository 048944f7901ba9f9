"""Indexer service: schedules event polling and snapshots.

One IndexerService instance owns all mutable indexer state (watermark,
running flag, counters). It is constructed at startup and handed to whoever
needs it; nothing here is module-level state.
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Iterable

import structlog

from koma.core.config import Settings
from koma.core.timezone import utc_now
from koma.models.system_alert import AlertSeverity
from koma.models.token_snapshot import TokenSnapshot
from koma.services.indexer.alerts import record_alert
from koma.services.indexer.categories import CATEGORIES, EventCategory
from koma.services.indexer.processor import CategoryResult, process_category
from koma.services.indexer.snapshot import take_snapshot
from koma.services.indexer.watermark import BlockWatermark
from koma.services.subgraph.client import SubgraphClient

logger = structlog.get_logger()


class IndexerService:
    """Polls the subgraph for new events and materializes snapshots.

    Lifecycle:
    1. ``start()`` loads the watermark from the database and runs one
       catch-up poll before returning
    2. Two loops then run until ``stop()``: event polling every
       INDEXER_POLL_INTERVAL_SECONDS and snapshots every SNAPSHOT_INTERVAL_SECONDS
    3. Each loop awaits its whole tick before sleeping, so ticks never overlap

    Example:
        indexer = IndexerService(client, uow_factory, settings)
        await indexer.start()
        ...
        await indexer.stop()
    """

    def __init__(
        self,
        client: SubgraphClient,
        uow_factory,
        settings: Settings,
        categories: Iterable[EventCategory] = CATEGORIES,
    ):
        """Initialize the indexer.

        Args:
            client: Subgraph client (closed by ``stop()``)
            uow_factory: UnitOfWork factory
            settings: Application settings (intervals, page size, decode policy)
            categories: Event categories to mirror
        """
        self.client = client
        self.uow_factory = uow_factory
        self.settings = settings
        self.categories = tuple(categories)

        self.watermark = BlockWatermark()
        self._watermark_loaded = False
        self._running = False
        self._shutdown = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

        self.poll_count = 0
        self.snapshot_count = 0
        self.last_poll_at: datetime | None = None
        self.last_snapshot_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Run the catch-up poll, then start the polling and snapshot loops.

        Calling ``start()`` on a running indexer does nothing.
        """
        if self._running:
            logger.info("indexer.already_running")
            return

        logger.info(
            "indexer.starting",
            poll_interval=self.settings.indexer_poll_interval_seconds,
            snapshot_interval=self.settings.snapshot_interval_seconds,
            categories=[category.name for category in self.categories],
        )

        self._shutdown.clear()
        await self.poll_events()

        poll_interval = self.settings.indexer_poll_interval_seconds
        snapshot_interval = self.settings.snapshot_interval_seconds
        self._tasks = [
            asyncio.create_task(self._run_loop("events", self.poll_events, poll_interval)),
            asyncio.create_task(self._run_loop("snapshots", self.take_snapshot, snapshot_interval)),
        ]
        self._running = True

        logger.info("indexer.started", watermark=self.watermark.value)

    async def stop(self) -> None:
        """Stop both loops, letting an in-flight tick finish, and close the client."""
        logger.info("indexer.stopping")
        self._shutdown.set()

        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._running = False

        await self.client.aclose()
        logger.info("indexer.stopped", watermark=self.watermark.value)

    async def _ensure_watermark(self) -> bool:
        if self._watermark_loaded:
            return True
        try:
            async with await self.uow_factory() as uow:
                self.watermark = await BlockWatermark.load(uow, self.categories)
        except Exception as e:
            logger.error(
                "indexer.watermark.load_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        self._watermark_loaded = True
        logger.info(
            "indexer.watermark.loaded",
            watermark=self.watermark.value,
            cursors=self.watermark.as_dict(),
        )
        return True

    async def poll_events(self) -> list[CategoryResult]:
        """Run every category processor concurrently and wait for all of them.

        A failing processor never cancels its siblings. When every category
        fails in the same tick an ERROR alert is recorded.

        Returns:
            One result per category (empty if the watermark could not be loaded)
        """
        if not await self._ensure_watermark():
            await record_alert(
                self.uow_factory,
                AlertSeverity.ERROR,
                "Indexer Poll Error",
                "Failed to poll events: watermark could not be loaded from the database",
            )
            return []

        logger.debug("indexer.poll.started", watermark=self.watermark.value)

        outcomes = await asyncio.gather(
            *(
                process_category(
                    category,
                    self.client,
                    self.uow_factory,
                    self.watermark,
                    page_size=self.settings.subgraph_page_size,
                    halt_on_decode_error=self.settings.halt_on_decode_error,
                )
                for category in self.categories
            ),
            return_exceptions=True,
        )

        results = []
        for category, outcome in zip(self.categories, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "indexer.poll.processor_crashed",
                    category=category.name,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                outcome = CategoryResult(
                    category=category.name,
                    cursor=self.watermark.cursor(category.name),
                    error=str(outcome),
                )
            results.append(outcome)

        self.poll_count += 1
        self.last_poll_at = utc_now()

        failed = [result.category for result in results if not result.ok]
        if results and len(failed) == len(results):
            await record_alert(
                self.uow_factory,
                AlertSeverity.ERROR,
                "Indexer Poll Error",
                "Failed to poll events for every category: "
                + "; ".join(f"{r.category}: {r.error}" for r in results),
            )

        logger.info(
            "indexer.poll.completed",
            watermark=self.watermark.value,
            stored=sum(result.stored for result in results),
            failed_categories=failed,
        )
        return results

    async def take_snapshot(self) -> TokenSnapshot | None:
        """Append a TokenSnapshot at the current watermark."""
        snapshot = await take_snapshot(self.uow_factory, self.watermark.value)
        if snapshot is not None:
            self.snapshot_count += 1
            self.last_snapshot_at = snapshot.snapshot_time
        return snapshot

    async def _run_loop(
        self, name: str, tick: Callable[[], Awaitable[object]], interval: float
    ) -> None:
        logger.info("indexer.loop.started", loop=name, interval=interval)

        while not self._shutdown.is_set():
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=interval)
                break
            except asyncio.TimeoutError:
                pass

            try:
                await tick()
            except Exception as e:
                # Ticks handle their own errors; this keeps the loop alive regardless
                logger.error(
                    "indexer.loop.error",
                    loop=name,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )

        logger.info("indexer.loop.stopped", loop=name)

    def status(self) -> dict:
        """Current indexer state for the health endpoint."""
        return {
            "is_running": self._running,
            "watermark": self.watermark.value,
            "cursors": self.watermark.as_dict(),
            "poll_count": self.poll_count,
            "snapshot_count": self.snapshot_count,
            "last_poll_at": self.last_poll_at.isoformat() if self.last_poll_at else None,
            "last_snapshot_at": (
                self.last_snapshot_at.isoformat() if self.last_snapshot_at else None
            ),
        }
