"""System health API endpoint.

GET /api/system/health reports how far the mirror has progressed, how many
events it holds, snapshot progress, open alerts and the indexer's own state.
"""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from koma.api.dependencies import get_indexer, get_uow_factory
from koma.core.timezone import utc_now
from koma.services.indexer.service import IndexerService

logger = structlog.get_logger()
router = APIRouter(prefix="/api/system", tags=["system"])

RECENT_ALERTS_LIMIT = 10


class EventCounts(BaseModel):
    mints: int
    burns: int
    transfers: int
    blacklisted: int
    unblacklisted: int


class DatabaseStatus(BaseModel):
    last_block: int = Field(..., description="Highest block number among stored events")
    last_block_time: datetime | None
    total_events: EventCounts


class IndexerStatus(BaseModel):
    is_running: bool
    watermark: int
    cursors: dict[str, int]
    last_poll_at: datetime | None
    last_snapshot: datetime | None
    snapshots_count: int


class AlertDTO(BaseModel):
    id: UUID
    severity: str
    title: str
    description: str
    source: str
    created: datetime


class SystemHealthResponse(BaseModel):
    """Response model for the system health endpoint."""

    database: DatabaseStatus
    indexer: IndexerStatus
    alerts: list[AlertDTO]
    as_of: datetime


@router.get("/health", response_model=SystemHealthResponse, status_code=status.HTTP_200_OK)
async def get_system_health(
    uow_factory=Depends(get_uow_factory),
    indexer: IndexerService | None = Depends(get_indexer),
) -> SystemHealthResponse:
    """Indexing progress, event counts, snapshots and unresolved alerts.

    ``indexer.is_running`` is false when the indexer is disabled for this
    process; the database figures are still reported.
    """
    try:
        async with await uow_factory() as uow:
            repositories = {
                "mints": uow.mints,
                "burns": uow.burns,
                "transfers": uow.transfers,
                "blacklisted": uow.blacklisted,
                "unblacklisted": uow.unblacklisted,
            }
            counts = {name: await repo.count() for name, repo in repositories.items()}
            latest = [await repo.get_latest() for repo in repositories.values()]
            latest_snapshot = await uow.snapshots.get_latest()
            snapshots_count = await uow.snapshots.count()
            alerts = await uow.alerts.list_unresolved(RECENT_ALERTS_LIMIT)
    except Exception as e:
        logger.error("system_health_failed", error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch system health. Please try again later.",
        )

    newest = max(
        (event for event in latest if event is not None),
        key=lambda event: event.block_number,
        default=None,
    )
    indexer_state = indexer.status() if indexer is not None else {}

    return SystemHealthResponse(
        database=DatabaseStatus(
            last_block=newest.block_number if newest else 0,
            last_block_time=newest.block_timestamp if newest else None,
            total_events=EventCounts(**counts),
        ),
        indexer=IndexerStatus(
            is_running=indexer_state.get("is_running", False),
            watermark=indexer_state.get("watermark", 0),
            cursors=indexer_state.get("cursors", {}),
            last_poll_at=indexer_state.get("last_poll_at"),
            last_snapshot=latest_snapshot.snapshot_time if latest_snapshot else None,
            snapshots_count=snapshots_count,
        ),
        alerts=[
            AlertDTO(
                id=alert.id,
                severity=alert.severity.value,
                title=alert.title,
                description=alert.description,
                source=alert.source,
                created=alert.created_at,
            )
            for alert in alerts
        ],
        as_of=utc_now(),
    )
