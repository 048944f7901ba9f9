"""Field decoders for raw subgraph events.

Subgraph entities encode addresses as 0x-prefixed hex, uint256 values as
decimal strings and timestamps as unix seconds (also strings). These helpers
convert them into the column types of the event tables and raise
EventDecodeError on anything unexpected.
"""

from datetime import datetime, timezone
from typing import Any

from eth_utils import is_hex_address, to_canonical_address

from koma.services.exceptions import EventDecodeError


def _require(raw: dict[str, Any], category: str, field: str) -> Any:
    value = raw.get(field)
    if value is None:
        raise EventDecodeError(category, field, "missing")
    return value


def _to_int(value: Any, category: str, field: str) -> int:
    # bool is an int subclass; a JSON true/false is never a valid number here
    if isinstance(value, bool):
        raise EventDecodeError(category, field, f"expected integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    raise EventDecodeError(category, field, f"expected integer, got {value!r}")


def decode_tx_hash(raw: dict[str, Any], category: str, field: str) -> str:
    """Normalize a transaction hash to lowercase 0x + 64 hex characters."""
    value = _require(raw, category, field)
    if not isinstance(value, str) or not value.startswith("0x") or len(value) != 66:
        raise EventDecodeError(category, field, f"invalid transaction hash {value!r}")
    try:
        int(value[2:], 16)
    except ValueError:
        raise EventDecodeError(category, field, f"invalid transaction hash {value!r}")
    return value.lower()


def decode_uint(raw: dict[str, Any], category: str, field: str) -> int:
    """Decode a non-negative integer (log index, block number, amount)."""
    value = _to_int(_require(raw, category, field), category, field)
    if value < 0:
        raise EventDecodeError(category, field, f"must be non-negative, got {value}")
    return value


def decode_address(raw: dict[str, Any], category: str, field: str) -> bytes:
    """Decode a hex address into its canonical 20 raw bytes."""
    value = _require(raw, category, field)
    if not isinstance(value, str) or not is_hex_address(value):
        raise EventDecodeError(category, field, f"invalid address {value!r}")
    return to_canonical_address(value)


def decode_timestamp(raw: dict[str, Any], category: str, field: str) -> datetime:
    """Decode unix seconds into a naive UTC datetime."""
    seconds = decode_uint(raw, category, field)
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError, ValueError) as e:
        raise EventDecodeError(category, field, f"timestamp out of range: {seconds}") from e
