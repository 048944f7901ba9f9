"""SystemAlert entity - Operational failures surfaced on the health endpoint."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from koma.core.timezone import utc_now


class AlertSeverity(str, Enum):
    """Alert severity levels."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SystemAlert(SQLModel, table=True):
    """SystemAlert records a failure; only the resolved flag ever changes."""

    __tablename__ = "system_alerts"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    severity: AlertSeverity = Field(index=True)
    title: str = Field(max_length=255)
    description: str
    source: str = Field(default="INDEXER", max_length=50)
    created_at: datetime = Field(default_factory=utc_now, index=True)
    resolved: bool = Field(default=False, index=True)
