"""Event repository for KOMA backend.

Provides data access for the five mirrored event tables. One repository class
serves every table; it is bound to a model class at construction time.
"""

from datetime import datetime
from typing import Any, Generic, TypeVar
from uuid import uuid4

from sqlalchemy import exists, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from koma.core.timezone import utc_now

EventT = TypeVar("EventT", bound=SQLModel)


class EventRepository(Generic[EventT]):
    """Repository for one event table.

    Every event table carries a UNIQUE (tx_hash, log_index) constraint, which
    makes ``insert_if_absent`` an atomic deduplicating insert.
    """

    def __init__(self, session: AsyncSession, model: type[EventT]):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
            model: Event model class this repository reads and writes
        """
        self.session = session
        self.model = model

    async def exists(self, tx_hash: str, log_index: int) -> bool:
        """Check if an event already exists (duplicate detection).

        Args:
            tx_hash: Transaction hash (0x...)
            log_index: Log index within the block

        Returns:
            True if event exists, False otherwise
        """
        result = await self.session.execute(
            select(
                exists().where(
                    self.model.tx_hash == tx_hash,  # type: ignore[attr-defined]
                    self.model.log_index == log_index,  # type: ignore[attr-defined]
                )
            )
        )
        return bool(result.scalar())

    async def insert_if_absent(self, values: dict[str, Any]) -> bool:
        """Insert an event unless its (tx_hash, log_index) is already stored.

        Query explanation:
        - INSERT: Try to insert new row
        - ON CONFLICT (tx_hash, log_index) DO NOTHING: Leave existing row untouched
        - RETURNING id: Only yields a row when the insert happened

        Args:
            values: Column values for the new row

        Returns:
            True if a row was inserted, False if it was already present
        """
        stmt = (
            insert(self.model)
            .values(id=uuid4(), indexed_at=utc_now(), **values)
            .on_conflict_do_nothing(index_elements=["tx_hash", "log_index"])
            .returning(self.model.id)  # type: ignore[attr-defined]
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def max_block_number(self) -> int:
        """Return the highest stored block number, or 0 for an empty table."""
        result = await self.session.execute(
            select(func.max(self.model.block_number))  # type: ignore[attr-defined]
        )
        return int(result.scalar() or 0)

    async def count(self, start: datetime | None = None, end: datetime | None = None) -> int:
        """Count events, optionally restricted to a block timestamp window.

        Args:
            start: Inclusive lower bound on block_timestamp
            end: Exclusive upper bound on block_timestamp

        Returns:
            Number of matching events
        """
        stmt = self._in_window(select(func.count()).select_from(self.model), start, end)
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)

    async def sum_amount(self, start: datetime | None = None, end: datetime | None = None) -> int:
        """Sum the amount column, optionally restricted to a block timestamp window.

        Only valid for tables with an amount column (mint, burn, transfer).

        Returns:
            Sum in smallest token units (0 when no rows match)
        """
        stmt = self._in_window(
            select(func.sum(self.model.amount)),  # type: ignore[attr-defined]
            start,
            end,
        )
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)

    async def list_recent(self, limit: int = 50, offset: int = 0) -> list[EventT]:
        """Retrieve events newest first (paginated)."""
        result = await self.session.execute(
            select(self.model)
            .order_by(
                self.model.block_timestamp.desc(),  # type: ignore[attr-defined]
                self.model.log_index.desc(),  # type: ignore[attr-defined]
            )
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def list_largest(
        self, start: datetime | None, end: datetime | None, limit: int = 10
    ) -> list[EventT]:
        """Retrieve the events with the largest amounts inside a time window."""
        stmt = self._in_window(select(self.model), start, end)
        result = await self.session.execute(
            stmt.order_by(self.model.amount.desc()).limit(limit)  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def get_latest(self) -> EventT | None:
        """Retrieve the event with the highest block number."""
        result = await self.session.execute(
            select(self.model)
            .order_by(
                self.model.block_number.desc(),  # type: ignore[attr-defined]
                self.model.log_index.desc(),  # type: ignore[attr-defined]
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_block_range(self, start_block: int, end_block: int) -> list[EventT]:
        """Retrieve events within a block range.

        Args:
            start_block: Starting block number (inclusive)
            end_block: Ending block number (inclusive)

        Returns:
            List of events ordered by block number and log index
        """
        result = await self.session.execute(
            select(self.model)
            .where(
                self.model.block_number >= start_block,  # type: ignore[attr-defined]
                self.model.block_number <= end_block,  # type: ignore[attr-defined]
            )
            .order_by(
                self.model.block_number.asc(),  # type: ignore[attr-defined]
                self.model.log_index.asc(),  # type: ignore[attr-defined]
            )
        )
        return list(result.scalars().all())

    def _in_window(self, stmt, start: datetime | None, end: datetime | None):
        if start is not None:
            stmt = stmt.where(self.model.block_timestamp >= start)  # type: ignore[attr-defined]
        if end is not None:
            stmt = stmt.where(self.model.block_timestamp < end)  # type: ignore[attr-defined]
        return stmt
