"""TokenSnapshot repository for KOMA backend.

Provides append-only snapshot persistence and the cross-table holder count.
"""

from sqlalchemy import func, select, union
from sqlalchemy.ext.asyncio import AsyncSession

from koma.models.mint_event import MintEvent
from koma.models.token_snapshot import TokenSnapshot
from koma.models.transfer_event import TransferEvent


class TokenSnapshotRepository:
    """Repository for TokenSnapshot entities.

    Snapshots are never updated; there is intentionally no update method.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, snapshot: TokenSnapshot) -> TokenSnapshot:
        """Persist new snapshot to database.

        Args:
            snapshot: TokenSnapshot entity to persist

        Returns:
            Persisted snapshot with generated ID
        """
        self.session.add(snapshot)
        await self.session.flush()
        return snapshot

    async def get_latest(self) -> TokenSnapshot | None:
        """Retrieve the most recent snapshot."""
        result = await self.session.execute(
            select(TokenSnapshot)
            .order_by(TokenSnapshot.snapshot_time.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def count(self) -> int:
        """Count all snapshots."""
        result = await self.session.execute(select(func.count()).select_from(TokenSnapshot))
        return int(result.scalar() or 0)

    async def count_unique_holders(self) -> int:
        """Count distinct addresses seen as a transfer endpoint or mint recipient.

        Query explanation:
        - UNION of transfer senders, transfer recipients and mint recipients
          (UNION, not UNION ALL, so each address appears once)
        - COUNT(*) over the deduplicated set

        Returns:
            Number of unique addresses
        """
        addresses = union(
            select(TransferEvent.from_address),  # type: ignore[call-overload]
            select(TransferEvent.to_address),  # type: ignore[call-overload]
            select(MintEvent.to_address),  # type: ignore[call-overload]
        ).subquery()
        result = await self.session.execute(select(func.count()).select_from(addresses))
        return int(result.scalar() or 0)
