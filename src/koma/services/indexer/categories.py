"""Event category descriptors.

Each mirrored event kind is described once here: the subgraph query and
collection key, the target table, and how to turn a raw subgraph entity into
column values. The processor is generic over these descriptors.
"""

from dataclasses import dataclass
from typing import Any, Callable

from sqlmodel import SQLModel

from koma.models.blacklist_event import BlacklistedEvent, UnBlacklistedEvent
from koma.models.burn_event import BurnEvent
from koma.models.mint_event import MintEvent
from koma.models.transfer_event import TransferEvent
from koma.services.indexer.decoding import (
    decode_address,
    decode_timestamp,
    decode_tx_hash,
    decode_uint,
)

PayloadDecoder = Callable[[dict[str, Any], str], dict[str, Any]]


def _query(collection: str, operation: str, fields: str) -> str:
    return f"""
    query {operation}($first: Int!, $skip: Int!, $blockNumber: Int!) {{
      {collection}(
        first: $first
        skip: $skip
        orderBy: blockNumber
        orderDirection: asc
        where: {{ blockNumber_gt: $blockNumber }}
      ) {{
        id
        {fields}
        blockNumber
        logIndex
      }}
    }}
    """


@dataclass(frozen=True)
class EventCategory:
    """Descriptor for one upstream event kind.

    Attributes:
        name: Short category name used in logs and alerts
        data_key: Collection name in the subgraph response
        query: Paginated GraphQL query (variables: first, skip, blockNumber)
        model: Event table the category is mirrored into
        hash_field: Upstream field carrying the transaction hash
        timestamp_field: Upstream field carrying the block timestamp
        decode_payload: Decodes the category-specific columns
    """

    name: str
    data_key: str
    query: str
    model: type[SQLModel]
    hash_field: str
    timestamp_field: str
    decode_payload: PayloadDecoder

    def dedup_key(self, raw: dict[str, Any]) -> tuple[str, int]:
        """Return the normalized (tx_hash, log_index) of a raw event."""
        return (
            decode_tx_hash(raw, self.name, self.hash_field),
            decode_uint(raw, self.name, "logIndex"),
        )

    def decode(self, raw: dict[str, Any]) -> dict[str, Any]:
        """Decode a raw subgraph entity into column values for ``model``.

        Raises:
            EventDecodeError: If any field is missing or malformed
        """
        tx_hash, log_index = self.dedup_key(raw)
        return {
            "tx_hash": tx_hash,
            "log_index": log_index,
            "block_number": decode_uint(raw, self.name, "blockNumber"),
            "block_timestamp": decode_timestamp(raw, self.name, self.timestamp_field),
            **self.decode_payload(raw, self.name),
        }


def _decode_mint(raw: dict[str, Any], category: str) -> dict[str, Any]:
    return {
        "to_address": decode_address(raw, category, "to"),
        "amount": decode_uint(raw, category, "amount"),
        "minter": decode_address(raw, category, "minter"),
    }


def _decode_burn(raw: dict[str, Any], category: str) -> dict[str, Any]:
    return {
        "from_address": decode_address(raw, category, "from"),
        "amount": decode_uint(raw, category, "amount"),
        "burner": decode_address(raw, category, "burner"),
    }


def _decode_transfer(raw: dict[str, Any], category: str) -> dict[str, Any]:
    return {
        "from_address": decode_address(raw, category, "from"),
        "to_address": decode_address(raw, category, "to"),
        "amount": decode_uint(raw, category, "amount"),
    }


def _decode_blacklist(raw: dict[str, Any], category: str) -> dict[str, Any]:
    return {
        "account": decode_address(raw, category, "account"),
        "blacklister": decode_address(raw, category, "blacklister"),
    }


MINT = EventCategory(
    name="mint",
    data_key="mints",
    query=_query("mints", "GetMints", "to amount minter timestamp transactionHash"),
    model=MintEvent,
    hash_field="transactionHash",
    timestamp_field="timestamp",
    decode_payload=_decode_mint,
)

BURN = EventCategory(
    name="burn",
    data_key="burns",
    query=_query("burns", "GetBurns", "from amount burner timestamp transactionHash"),
    model=BurnEvent,
    hash_field="transactionHash",
    timestamp_field="timestamp",
    decode_payload=_decode_burn,
)

# The transfer entity is generated from the ERC-20 ABI and names its fields
# differently (txhash, blockTimestamp) from the hand-written entities.
TRANSFER = EventCategory(
    name="transfer",
    data_key="transfers",
    query=_query("transfers", "GetTransfers", "from to amount blockTimestamp txhash"),
    model=TransferEvent,
    hash_field="txhash",
    timestamp_field="blockTimestamp",
    decode_payload=_decode_transfer,
)

BLACKLISTED = EventCategory(
    name="blacklisted",
    data_key="blacklisteds",
    query=_query(
        "blacklisteds", "GetBlacklisted", "account blacklister timestamp transactionHash"
    ),
    model=BlacklistedEvent,
    hash_field="transactionHash",
    timestamp_field="timestamp",
    decode_payload=_decode_blacklist,
)

UNBLACKLISTED = EventCategory(
    name="unblacklisted",
    data_key="unBlacklisteds",
    query=_query(
        "unBlacklisteds", "GetUnBlacklisted", "account blacklister timestamp transactionHash"
    ),
    model=UnBlacklistedEvent,
    hash_field="transactionHash",
    timestamp_field="timestamp",
    decode_payload=_decode_blacklist,
)

CATEGORIES: tuple[EventCategory, ...] = (MINT, BURN, TRANSFER, BLACKLISTED, UNBLACKLISTED)
