"""Repository layer for KOMA backend.

Provides data access abstractions for all domain entities.
"""

from koma.repositories.blacklist import BlacklistEntry, BlacklistRepository
from koma.repositories.event import EventRepository
from koma.repositories.system_alert import SystemAlertRepository
from koma.repositories.token_snapshot import TokenSnapshotRepository

__all__ = [
    "EventRepository",
    "BlacklistRepository",
    "BlacklistEntry",
    "TokenSnapshotRepository",
    "SystemAlertRepository",
]
