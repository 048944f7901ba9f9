"""Blacklist repository for KOMA backend.

Derives the current blacklist state from the two append-only event tables.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from koma.models.blacklist_event import BlacklistedEvent, UnBlacklistedEvent


@dataclass(frozen=True)
class BlacklistEntry:
    """An account that is blacklisted right now."""

    account: bytes
    blacklisted_at: datetime
    blacklister: bytes


def _event_order(event: BlacklistedEvent | UnBlacklistedEvent) -> tuple[datetime, int, int]:
    # Timestamp decides; block and log position only break ties inside one block.
    return (event.block_timestamp, event.block_number, event.log_index)


class BlacklistRepository:
    """Repository for derived blacklist status.

    An account is currently blacklisted when its latest Blacklisted event is
    newer than its latest UnBlacklisted event (or it was never unblacklisted).
    "Newer" compares block timestamps, never insertion order.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def _latest_per_account(
        self, model, account: bytes | None = None
    ) -> dict[bytes, Any]:
        # DISTINCT ON (account) keeps the first row per account in ORDER BY order
        stmt = (
            select(model)
            .distinct(model.account)
            .order_by(
                model.account,
                model.block_timestamp.desc(),
                model.block_number.desc(),
                model.log_index.desc(),
            )
        )
        if account is not None:
            stmt = stmt.where(model.account == account)
        result = await self.session.execute(stmt)
        return {bytes(event.account): event for event in result.scalars().all()}

    async def get_currently_blacklisted(self) -> list[BlacklistEntry]:
        """Return every account whose latest blacklist event is a Blacklisted event.

        Returns:
            Entries ordered by blacklisting time, newest first
        """
        blacklisted = await self._latest_per_account(BlacklistedEvent)
        unblacklisted = await self._latest_per_account(UnBlacklistedEvent)

        entries = []
        for account, event in blacklisted.items():
            lifted = unblacklisted.get(account)
            if lifted is not None and _event_order(lifted) > _event_order(event):
                continue
            entries.append(
                BlacklistEntry(
                    account=account,
                    blacklisted_at=event.block_timestamp,
                    blacklister=bytes(event.blacklister),
                )
            )

        entries.sort(key=lambda entry: entry.blacklisted_at, reverse=True)
        return entries

    async def is_blacklisted(self, account: bytes) -> bool:
        """Check the current blacklist status of a single account.

        Args:
            account: Raw 20-byte account address

        Returns:
            True if the account is blacklisted right now
        """
        blacklisted = await self._latest_per_account(BlacklistedEvent, account)
        if account not in blacklisted:
            return False
        unblacklisted = await self._latest_per_account(UnBlacklistedEvent, account)
        lifted = unblacklisted.get(account)
        return lifted is None or _event_order(blacklisted[account]) > _event_order(lifted)

    async def count_accounts(self) -> tuple[int, int]:
        """Count distinct accounts ever blacklisted and ever unblacklisted."""
        blacklisted = await self.session.execute(
            select(func.count(func.distinct(BlacklistedEvent.account)))
        )
        unblacklisted = await self.session.execute(
            select(func.count(func.distinct(UnBlacklistedEvent.account)))
        )
        return int(blacklisted.scalar() or 0), int(unblacklisted.scalar() or 0)
