"""Token snapshot materialization."""

import structlog

from koma.models.system_alert import AlertSeverity
from koma.models.token_snapshot import TokenSnapshot
from koma.services.indexer.alerts import record_alert
from koma.uow import UnitOfWork

logger = structlog.get_logger()


async def build_snapshot(uow: UnitOfWork, latest_block: int) -> TokenSnapshot:
    """Compute aggregate totals from the event tables and append a snapshot.

    Everything is recomputed from scratch; previous snapshots are not read.

    Args:
        uow: Unit of work (commits on exit)
        latest_block: Current process-wide watermark

    Returns:
        Persisted snapshot
    """
    total_minted = await uow.mints.sum_amount()
    total_burned = await uow.burns.sum_amount()
    unique_holders = await uow.snapshots.count_unique_holders()
    total_transactions = await uow.transfers.count()

    snapshot = TokenSnapshot(
        total_supply=total_minted - total_burned,
        total_minted=total_minted,
        total_burned=total_burned,
        unique_holders=unique_holders,
        total_transactions=total_transactions,
        latest_block_number=latest_block,
    )
    return await uow.snapshots.add(snapshot)


async def take_snapshot(uow_factory, latest_block: int) -> TokenSnapshot | None:
    """Build and persist a snapshot, recording an ERROR alert on failure.

    Never raises; the next snapshot tick simply tries again.

    Returns:
        The persisted snapshot, or None if it could not be taken
    """
    try:
        async with await uow_factory() as uow:
            snapshot = await build_snapshot(uow, latest_block)

        logger.info(
            "indexer.snapshot.created",
            total_supply=str(snapshot.total_supply),
            unique_holders=snapshot.unique_holders,
            total_transactions=snapshot.total_transactions,
            latest_block=snapshot.latest_block_number,
        )
        return snapshot

    except Exception as e:
        logger.error(
            "indexer.snapshot.failed",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        await record_alert(
            uow_factory,
            AlertSeverity.ERROR,
            "Snapshot Error",
            f"Failed to create token snapshot: {e}",
        )
        return None
