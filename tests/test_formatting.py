"""Tests for display formatting helpers."""

from datetime import datetime, timedelta

import pytest

from koma.utils.formatting import (
    calculate_change,
    format_address,
    format_amount,
    resolve_timeframe,
    timeframe_range,
)


@pytest.mark.parametrize(
    "units, expected",
    [
        (0, "0.00000000"),
        (1, "0.00000001"),
        (150_000_000, "1.50000000"),
        (-50_000_000, "-0.50000000"),
        (2**256 - 1, f"{(2**256 - 1) // 10**8}.{(2**256 - 1) % 10**8:08d}"),
    ],
)
def test_format_amount(units, expected):
    assert format_amount(units) == expected


def test_format_address_is_checksummed():
    raw = bytes.fromhex("5aaeb6053f3e94c9b9a09f33669435e7ef1beaed")
    assert format_address(raw) == "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


def test_calculate_change():
    assert calculate_change(150, 100) == 50.0
    assert calculate_change(50, 100) == -50.0
    assert calculate_change(10, 0) == 0.0


def test_timeframe_range():
    now = datetime(2026, 1, 10, 12, 0, 0)

    assert timeframe_range("1h", now) == (now - timedelta(hours=1), now)
    assert timeframe_range("90d", now) == (now - timedelta(days=90), now)
    assert timeframe_range("bogus", now) == (now - timedelta(days=1), now)
    assert resolve_timeframe(None) == "24h"
    assert resolve_timeframe("30d") == "30d"
