"""Token dashboard API endpoints.

This module implements read-only REST endpoints over the mirrored event tables:
- GET /api/token/overview - Supply totals and activity for a timeframe
- GET /api/token/mints - Paginated mint history, newest first
- GET /api/token/burns - Paginated burn history, newest first
- GET /api/token/transfers - Paginated transfer history, newest first
- GET /api/token/blacklist - Currently blacklisted accounts

Amounts are rendered as decimal strings with 8 places and addresses as
checksummed hex.
"""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from koma.api.dependencies import get_uow_factory
from koma.core.timezone import utc_now
from koma.utils.formatting import (
    calculate_change,
    format_address,
    format_amount,
    resolve_timeframe,
    timeframe_range,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/api/token", tags=["token"])

LARGE_TRANSFERS_LIMIT = 10


# Response Models


class SupplyOverview(BaseModel):
    total_supply: str
    total_minted: str
    total_burned: str
    net_issuance: str


class AmountActivity(BaseModel):
    count: int
    amount: str
    change_pct: str = Field(..., description="Change versus the previous window, 2 decimals")


class TransferActivity(BaseModel):
    count: int
    volume: str


class TimeframeActivity(BaseModel):
    timeframe: str
    mints: AmountActivity
    burns: AmountActivity
    transfers: TransferActivity


class LargeTransfer(BaseModel):
    transaction: str
    from_: str = Field(..., alias="from")
    to: str
    amount: str
    timestamp: datetime

    model_config = {"populate_by_name": True}


class RecentActivity(BaseModel):
    large_transfers: list[LargeTransfer]


class TimeWindow(BaseModel):
    from_: datetime = Field(..., alias="from")
    to: datetime

    model_config = {"populate_by_name": True}


class OverviewResponse(BaseModel):
    """Response model for the token overview."""

    overview: SupplyOverview
    timeframe_activity: TimeframeActivity
    recent_activity: RecentActivity
    as_of: datetime
    time_range: TimeWindow


class Pagination(BaseModel):
    total: int = Field(..., description="Total number of events (across all pages)")
    limit: int
    offset: int
    has_more: bool


class MintDTO(BaseModel):
    transaction: str
    log_index: int
    block: int
    timestamp: datetime
    to: str
    amount: str
    minter: str


class MintHistoryResponse(BaseModel):
    mints: list[MintDTO]
    pagination: Pagination


class BurnDTO(BaseModel):
    transaction: str
    log_index: int
    block: int
    timestamp: datetime
    from_: str = Field(..., alias="from")
    amount: str
    burner: str

    model_config = {"populate_by_name": True}


class BurnHistoryResponse(BaseModel):
    burns: list[BurnDTO]
    pagination: Pagination


class TransferDTO(BaseModel):
    transaction: str
    log_index: int
    block: int
    timestamp: datetime
    from_: str = Field(..., alias="from")
    to: str
    amount: str

    model_config = {"populate_by_name": True}


class TransferHistoryResponse(BaseModel):
    transfers: list[TransferDTO]
    pagination: Pagination


class BlacklistedAccount(BaseModel):
    account: str
    blacklisted_at: datetime
    blacklisted_by: str


class BlacklistHistory(BaseModel):
    total_blacklisted: int = Field(..., description="Distinct accounts ever blacklisted")
    total_unblacklisted: int = Field(..., description="Distinct accounts ever unblacklisted")
    currently_active: int


class BlacklistResponse(BaseModel):
    """Response model for the current blacklist."""

    currently_blacklisted: list[BlacklistedAccount]
    blacklist_history: BlacklistHistory
    as_of: datetime


def _pagination(total: int, limit: int, offset: int, page_len: int) -> Pagination:
    return Pagination(total=total, limit=limit, offset=offset, has_more=offset + page_len < total)


def _server_error(event: str, e: Exception, detail: str) -> HTTPException:
    logger.error(event, error=str(e), error_type=type(e).__name__)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


# API Endpoints


@router.get("/overview", response_model=OverviewResponse)
async def get_token_overview(
    timeframe: str = Query(default="24h", description="One of 1h, 24h, 7d, 30d, 90d"),
    uow_factory=Depends(get_uow_factory),
) -> OverviewResponse:
    """Supply totals plus mint, burn and transfer activity for a timeframe.

    Mint and burn amounts are compared with the previous window of the same
    length. Unknown timeframes fall back to 24h.

    Example:
        GET /api/token/overview?timeframe=7d
    """
    timeframe = resolve_timeframe(timeframe)
    start, end = timeframe_range(timeframe)
    previous_start = start - (end - start)

    try:
        async with await uow_factory() as uow:
            total_minted = await uow.mints.sum_amount()
            total_burned = await uow.burns.sum_amount()

            mint_count = await uow.mints.count(start)
            minted = await uow.mints.sum_amount(start)
            burn_count = await uow.burns.count(start)
            burned = await uow.burns.sum_amount(start)
            transfer_count = await uow.transfers.count(start)
            transfer_volume = await uow.transfers.sum_amount(start)

            previous_minted = await uow.mints.sum_amount(previous_start, start)
            previous_burned = await uow.burns.sum_amount(previous_start, start)

            largest = await uow.transfers.list_largest(start, None, LARGE_TRANSFERS_LIMIT)
    except Exception as e:
        raise _server_error(
            "token_overview_failed", e, "Failed to fetch token overview. Please try again later."
        )

    logger.debug("token_overview_retrieved", timeframe=timeframe)

    return OverviewResponse(
        overview=SupplyOverview(
            total_supply=format_amount(total_minted - total_burned),
            total_minted=format_amount(total_minted),
            total_burned=format_amount(total_burned),
            net_issuance=format_amount(total_minted - total_burned),
        ),
        timeframe_activity=TimeframeActivity(
            timeframe=timeframe,
            mints=AmountActivity(
                count=mint_count,
                amount=format_amount(minted),
                change_pct=f"{calculate_change(minted, previous_minted):.2f}",
            ),
            burns=AmountActivity(
                count=burn_count,
                amount=format_amount(burned),
                change_pct=f"{calculate_change(burned, previous_burned):.2f}",
            ),
            transfers=TransferActivity(count=transfer_count, volume=format_amount(transfer_volume)),
        ),
        recent_activity=RecentActivity(
            large_transfers=[
                LargeTransfer(
                    transaction=transfer.tx_hash,
                    from_=format_address(transfer.from_address),
                    to=format_address(transfer.to_address),
                    amount=format_amount(transfer.amount),
                    timestamp=transfer.block_timestamp,
                )
                for transfer in largest
            ]
        ),
        as_of=utc_now(),
        time_range=TimeWindow(from_=start, to=end),
    )


@router.get("/mints", response_model=MintHistoryResponse)
async def get_mint_history(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    uow_factory=Depends(get_uow_factory),
) -> MintHistoryResponse:
    """Paginated mint history, newest first."""
    try:
        async with await uow_factory() as uow:
            mints = await uow.mints.list_recent(limit, offset)
            total = await uow.mints.count()
    except Exception as e:
        raise _server_error(
            "mint_history_failed", e, "Failed to fetch mint history. Please try again later."
        )

    return MintHistoryResponse(
        mints=[
            MintDTO(
                transaction=mint.tx_hash,
                log_index=mint.log_index,
                block=mint.block_number,
                timestamp=mint.block_timestamp,
                to=format_address(mint.to_address),
                amount=format_amount(mint.amount),
                minter=format_address(mint.minter),
            )
            for mint in mints
        ],
        pagination=_pagination(total, limit, offset, len(mints)),
    )


@router.get("/burns", response_model=BurnHistoryResponse)
async def get_burn_history(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    uow_factory=Depends(get_uow_factory),
) -> BurnHistoryResponse:
    """Paginated burn history, newest first."""
    try:
        async with await uow_factory() as uow:
            burns = await uow.burns.list_recent(limit, offset)
            total = await uow.burns.count()
    except Exception as e:
        raise _server_error(
            "burn_history_failed", e, "Failed to fetch burn history. Please try again later."
        )

    return BurnHistoryResponse(
        burns=[
            BurnDTO(
                transaction=burn.tx_hash,
                log_index=burn.log_index,
                block=burn.block_number,
                timestamp=burn.block_timestamp,
                from_=format_address(burn.from_address),
                amount=format_amount(burn.amount),
                burner=format_address(burn.burner),
            )
            for burn in burns
        ],
        pagination=_pagination(total, limit, offset, len(burns)),
    )


@router.get("/transfers", response_model=TransferHistoryResponse)
async def get_transfer_history(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    uow_factory=Depends(get_uow_factory),
) -> TransferHistoryResponse:
    """Paginated transfer history, newest first."""
    try:
        async with await uow_factory() as uow:
            transfers = await uow.transfers.list_recent(limit, offset)
            total = await uow.transfers.count()
    except Exception as e:
        raise _server_error(
            "transfer_history_failed",
            e,
            "Failed to fetch transfer history. Please try again later.",
        )

    return TransferHistoryResponse(
        transfers=[
            TransferDTO(
                transaction=transfer.tx_hash,
                log_index=transfer.log_index,
                block=transfer.block_number,
                timestamp=transfer.block_timestamp,
                from_=format_address(transfer.from_address),
                to=format_address(transfer.to_address),
                amount=format_amount(transfer.amount),
            )
            for transfer in transfers
        ],
        pagination=_pagination(total, limit, offset, len(transfers)),
    )


@router.get("/blacklist", response_model=BlacklistResponse)
async def get_blacklist_status(uow_factory=Depends(get_uow_factory)) -> BlacklistResponse:
    """Accounts blacklisted right now, derived from the latest event per account.

    An account that was blacklisted, unblacklisted and blacklisted again is
    listed; one whose latest event is an UnBlacklisted event is not.
    """
    try:
        async with await uow_factory() as uow:
            entries = await uow.blacklist.get_currently_blacklisted()
            total_blacklisted, total_unblacklisted = await uow.blacklist.count_accounts()
    except Exception as e:
        raise _server_error(
            "blacklist_status_failed",
            e,
            "Failed to fetch blacklist status. Please try again later.",
        )

    return BlacklistResponse(
        currently_blacklisted=[
            BlacklistedAccount(
                account=format_address(entry.account),
                blacklisted_at=entry.blacklisted_at,
                blacklisted_by=format_address(entry.blacklister),
            )
            for entry in entries
        ],
        blacklist_history=BlacklistHistory(
            total_blacklisted=total_blacklisted,
            total_unblacklisted=total_unblacklisted,
            currently_active=len(entries),
        ),
        as_of=utc_now(),
    )
