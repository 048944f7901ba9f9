"""TokenSnapshot entity - Point-in-time aggregate totals."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Column
from sqlmodel import Field, SQLModel

from koma.core.timezone import utc_now
from koma.models.types import TokenAmount


class TokenSnapshot(SQLModel, table=True):
    """TokenSnapshot is an append-only aggregate computed on the snapshot timer."""

    __tablename__ = "token_snapshots"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    snapshot_time: datetime = Field(default_factory=utc_now, index=True)
    total_supply: int = Field(sa_column=Column(TokenAmount(), nullable=False))
    total_minted: int = Field(sa_column=Column(TokenAmount(), nullable=False))
    total_burned: int = Field(sa_column=Column(TokenAmount(), nullable=False))
    unique_holders: int = Field(default=0, ge=0)
    total_transactions: int = Field(default=0, ge=0)
    latest_block_number: int = Field(default=0, ge=0, sa_type=BigInteger)
