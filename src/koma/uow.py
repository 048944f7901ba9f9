"""Unit of Work pattern for KOMA backend.

Provides transaction management with automatic commit/rollback and access to all repositories.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from koma.models.blacklist_event import BlacklistedEvent, UnBlacklistedEvent
from koma.models.burn_event import BurnEvent
from koma.models.mint_event import MintEvent
from koma.models.transfer_event import TransferEvent
from koma.repositories.blacklist import BlacklistRepository
from koma.repositories.event import EventRepository
from koma.repositories.system_alert import SystemAlertRepository
from koma.repositories.token_snapshot import TokenSnapshotRepository

logger = structlog.get_logger()


class UnitOfWork:
    """Unit of Work pattern implementation.

    Manages database transactions and provides access to all repositories.
    Use as async context manager for automatic commit/rollback.

    Example:
        async with await uow_factory() as uow:
            inserted = await uow.mints.insert_if_absent(values)
            # Automatically commits on successful exit
            # Automatically rolls back on exception
    """

    def __init__(self, session: AsyncSession):
        """Initialize UnitOfWork with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

        self.mints = EventRepository(session, MintEvent)
        self.burns = EventRepository(session, BurnEvent)
        self.transfers = EventRepository(session, TransferEvent)
        self.blacklisted = EventRepository(session, BlacklistedEvent)
        self.unblacklisted = EventRepository(session, UnBlacklistedEvent)
        self.blacklist = BlacklistRepository(session)
        self.snapshots = TokenSnapshotRepository(session)
        self.alerts = SystemAlertRepository(session)

    def events_for(self, model: type) -> EventRepository:
        """Return the event repository bound to ``model``'s table.

        Raises:
            KeyError: If ``model`` is not an event table
        """
        repositories = {
            MintEvent: self.mints,
            BurnEvent: self.burns,
            TransferEvent: self.transfers,
            BlacklistedEvent: self.blacklisted,
            UnBlacklistedEvent: self.unblacklisted,
        }
        return repositories[model]

    async def __aenter__(self):
        """Enter async context manager.

        Returns:
            self: UnitOfWork instance with all repositories available
        """
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager with automatic commit/rollback.

        Returns:
            False: Always re-raise exceptions after rollback
        """
        try:
            if exc_type is None:
                await self.session.commit()
                logger.debug("transaction.committed")
            else:
                await self.session.rollback()
                logger.info("transaction.rolled_back", exc_type=exc_type.__name__)
        finally:
            await self.session.close()

        return False


def create_uow_factory(session_factory: async_sessionmaker[AsyncSession]):
    """Create a factory function that produces UnitOfWork instances.

    Args:
        session_factory: SQLAlchemy async session factory

    Returns:
        Callable that creates UnitOfWork instances from new sessions

    Example:
        session_factory = setup_db_session(db_url, pool_size=20)
        uow_factory = create_uow_factory(session_factory)

        async with await uow_factory() as uow:
            await uow.alerts.create(AlertSeverity.ERROR, "title", "details")
    """

    async def _create_uow():
        """Create a new UnitOfWork instance with a new session."""
        session = session_factory()
        return UnitOfWork(session)

    return _create_uow
