"""Blacklist entities - Accounts added to and removed from the token blacklist."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Column, LargeBinary, UniqueConstraint
from sqlmodel import Field, SQLModel

from koma.core.timezone import utc_now


class BlacklistedEvent(SQLModel, table=True):
    """BlacklistedEvent mirrors one Blacklisted log."""

    __tablename__ = "blacklisted_events"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index", name="uq_blacklisted_events_tx_log"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tx_hash: str = Field(max_length=66, index=True)
    log_index: int
    block_number: int = Field(sa_type=BigInteger, index=True)
    block_timestamp: datetime = Field(index=True)
    account: bytes = Field(sa_column=Column(LargeBinary(20), nullable=False, index=True))
    blacklister: bytes = Field(sa_column=Column(LargeBinary(20), nullable=False))
    indexed_at: datetime = Field(default_factory=utc_now)


class UnBlacklistedEvent(SQLModel, table=True):
    """UnBlacklistedEvent mirrors one UnBlacklisted log."""

    __tablename__ = "unblacklisted_events"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("tx_hash", "log_index", name="uq_unblacklisted_events_tx_log"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tx_hash: str = Field(max_length=66, index=True)
    log_index: int
    block_number: int = Field(sa_type=BigInteger, index=True)
    block_timestamp: datetime = Field(index=True)
    account: bytes = Field(sa_column=Column(LargeBinary(20), nullable=False, index=True))
    blacklister: bytes = Field(sa_column=Column(LargeBinary(20), nullable=False))
    indexed_at: datetime = Field(default_factory=utc_now)
