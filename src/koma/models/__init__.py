"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from koma.models.blacklist_event import BlacklistedEvent, UnBlacklistedEvent
from koma.models.burn_event import BurnEvent
from koma.models.mint_event import MintEvent
from koma.models.system_alert import AlertSeverity, SystemAlert
from koma.models.token_snapshot import TokenSnapshot
from koma.models.transfer_event import TransferEvent

__all__ = [
    "MintEvent",
    "BurnEvent",
    "TransferEvent",
    "BlacklistedEvent",
    "UnBlacklistedEvent",
    "TokenSnapshot",
    "SystemAlert",
    "AlertSeverity",
]
