"""Custom column types shared by the event tables."""

from decimal import Decimal

from sqlalchemy import Numeric
from sqlalchemy.types import TypeDecorator


class TokenAmount(TypeDecorator):
    """Arbitrary-precision token amount in the smallest unit.

    Stored as NUMERIC(78, 0), which fits any uint256, and surfaced to Python as
    a plain ``int`` so amounts never pass through float.
    """

    impl = Numeric(78, 0)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return Decimal(int(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)
