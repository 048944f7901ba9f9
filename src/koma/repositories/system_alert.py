"""SystemAlert repository for KOMA backend."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from koma.models.system_alert import AlertSeverity, SystemAlert


class SystemAlertRepository:
    """Repository for SystemAlert entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def create(
        self,
        severity: AlertSeverity,
        title: str,
        description: str,
        source: str = "INDEXER",
    ) -> SystemAlert:
        """Create and persist a new alert.

        Args:
            severity: Alert severity level
            title: Short human-readable summary
            description: Failure details
            source: Component that raised the alert

        Returns:
            Persisted alert
        """
        alert = SystemAlert(
            severity=severity,
            title=title[:255],
            description=description,
            source=source,
        )
        self.session.add(alert)
        await self.session.flush()
        return alert

    async def list_unresolved(self, limit: int = 10) -> list[SystemAlert]:
        """Retrieve unresolved alerts, newest first."""
        result = await self.session.execute(
            select(SystemAlert)
            .where(SystemAlert.resolved == False)  # type: ignore[arg-type]  # noqa: E712
            .order_by(SystemAlert.created_at.desc())  # type: ignore[attr-defined]
            .limit(limit)
        )
        return list(result.scalars().all())

    async def resolve(self, alert_id: UUID) -> bool:
        """Mark an alert as resolved (idempotent).

        Args:
            alert_id: Alert's unique identifier

        Returns:
            True if the alert exists, False otherwise
        """
        alert = await self.session.get(SystemAlert, alert_id)
        if alert is None:
            return False
        alert.resolved = True
        self.session.add(alert)
        await self.session.flush()
        return True
