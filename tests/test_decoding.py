"""Tests for raw subgraph event decoding."""

from datetime import datetime

import pytest

from koma.services.exceptions import EventDecodeError
from koma.services.indexer.categories import BURN, MINT, TRANSFER
from koma.services.indexer.decoding import decode_address, decode_tx_hash, decode_uint

TX = "0x" + "AB" * 32


def test_mint_decodes_to_column_values(raw_mint):
    raw = raw_mint(15, amount=250_000_000, log_index=3)

    values = MINT.decode(raw)

    assert values["block_number"] == 15
    assert values["log_index"] == 3
    assert values["amount"] == 250_000_000
    assert values["to_address"] == bytes.fromhex("a1" * 20)
    assert values["minter"] == bytes.fromhex("d4" * 20)
    assert values["block_timestamp"] == datetime(2023, 11, 14, 22, 16, 20)
    assert values["tx_hash"] == raw["transactionHash"]


def test_transfer_reads_its_own_field_names(raw_transfer):
    """Transfers carry txhash/blockTimestamp instead of transactionHash/timestamp."""
    raw = raw_transfer(20)

    values = TRANSFER.decode(raw)

    assert values["tx_hash"] == raw["txhash"]
    assert values["from_address"] == bytes.fromhex("a1" * 20)
    assert values["to_address"] == bytes.fromhex("b2" * 20)


def test_amount_beyond_64_bits_is_exact(raw_burn):
    amount = 2**255 + 12345
    values = BURN.decode(raw_burn(1, amount=amount))
    assert values["amount"] == amount


def test_tx_hash_is_lowercased():
    assert decode_tx_hash({"h": TX}, "mint", "h") == TX.lower()


@pytest.mark.parametrize("value", ["0x1234", "ab" * 33, "0x" + "zz" * 32, 42])
def test_invalid_tx_hash_rejected(value):
    with pytest.raises(EventDecodeError):
        decode_tx_hash({"h": value}, "mint", "h")


@pytest.mark.parametrize("value", ["-1", "1.5", "", True, "１２"])
def test_invalid_uint_rejected(value):
    with pytest.raises(EventDecodeError):
        decode_uint({"n": value}, "mint", "n")


def test_missing_field_names_category_and_field(raw_mint):
    raw = raw_mint(1)
    del raw["amount"]

    with pytest.raises(EventDecodeError) as exc_info:
        MINT.decode(raw)

    assert exc_info.value.category == "mint"
    assert exc_info.value.field == "amount"
    assert str(exc_info.value) == "mint.amount: missing"


def test_invalid_address_rejected():
    with pytest.raises(EventDecodeError):
        decode_address({"a": "0x1234"}, "transfer", "a")
