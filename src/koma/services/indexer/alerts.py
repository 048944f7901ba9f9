"""Persisted operational alerts."""

import structlog

from koma.models.system_alert import AlertSeverity

logger = structlog.get_logger()


async def record_alert(
    uow_factory,
    severity: AlertSeverity,
    title: str,
    description: str,
    source: str = "INDEXER",
) -> None:
    """Persist a SystemAlert in its own transaction.

    Never raises: when the alert itself cannot be stored (typically because the
    database is what failed) the failure is only logged.
    """
    try:
        async with await uow_factory() as uow:
            await uow.alerts.create(severity, title, description, source=source)
        logger.info("alert.recorded", severity=severity.value, title=title, source=source)
    except Exception as e:
        logger.error(
            "alert.record_failed",
            severity=severity.value,
            title=title,
            error=str(e),
            error_type=type(e).__name__,
        )
