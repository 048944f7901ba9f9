"""Display helpers for token amounts, addresses and dashboard time windows."""

from datetime import datetime, timedelta

from web3 import Web3

from koma.core.timezone import utc_now

# KOMA has 8 decimals: 1 KOMA = 10**8 smallest units
TOKEN_DECIMALS = 8
SCALE = 10**TOKEN_DECIMALS

TIMEFRAMES: dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "24h": timedelta(days=1),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}
DEFAULT_TIMEFRAME = "24h"


def format_amount(units: int) -> str:
    """Render an amount in smallest units as a decimal string with 8 places.

    Integer arithmetic keeps full precision for uint256-sized values.

    Example:
        >>> format_amount(150_000_000)
        '1.50000000'
    """
    sign = "-" if units < 0 else ""
    whole, fraction = divmod(abs(units), SCALE)
    return f"{sign}{whole}.{fraction:0{TOKEN_DECIMALS}d}"


def format_address(address: bytes) -> str:
    """Render a raw 20-byte address as EIP-55 checksummed hex."""
    return Web3.to_checksum_address(bytes(address))


def calculate_change(current: int, previous: int) -> float:
    """Percentage change from ``previous`` to ``current`` (0 when previous is 0)."""
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def resolve_timeframe(timeframe: str | None) -> str:
    """Return ``timeframe`` if it is known, otherwise the 24h default."""
    if timeframe in TIMEFRAMES:
        return timeframe  # type: ignore[return-value]
    return DEFAULT_TIMEFRAME


def timeframe_range(
    timeframe: str | None, now: datetime | None = None
) -> tuple[datetime, datetime]:
    """Return the (start, end) window ending now for a timeframe label.

    Unknown labels fall back to 24h.
    """
    end = now or utc_now()
    return end - TIMEFRAMES[resolve_timeframe(timeframe)], end
