"""BurnEvent entity - Tokens burned from an address."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Column, LargeBinary, UniqueConstraint
from sqlmodel import Field, SQLModel

from koma.core.timezone import utc_now
from koma.models.types import TokenAmount


class BurnEvent(SQLModel, table=True):
    """BurnEvent mirrors one Burn log emitted by the token contract."""

    __tablename__ = "burn_events"  # type: ignore[assignment]
    __table_args__ = (UniqueConstraint("tx_hash", "log_index", name="uq_burn_events_tx_log"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tx_hash: str = Field(max_length=66, index=True)
    log_index: int
    block_number: int = Field(sa_type=BigInteger, index=True)
    block_timestamp: datetime = Field(index=True)
    from_address: bytes = Field(sa_column=Column(LargeBinary(20), nullable=False))
    amount: int = Field(sa_column=Column(TokenAmount(), nullable=False))
    burner: bytes = Field(sa_column=Column(LargeBinary(20), nullable=False))
    indexed_at: datetime = Field(default_factory=utc_now)
