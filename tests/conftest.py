"""pytest fixtures for KOMA indexer tests.

Provides:
- postgres_container: Session-scoped testcontainer PostgreSQL instance
- utc_timezone: Autouse fixture enforcing UTC timezone
- session: Function-scoped database session with table truncation
- uow_factory: Function-scoped UnitOfWork factory
- subgraph: In-memory stand-in for the subgraph GraphQL API
- raw_mint / raw_burn / raw_transfer / raw_blacklisted / raw_unblacklisted:
  builders for raw subgraph entities
"""

import os
import re
import subprocess
import sys
from collections import defaultdict
from pathlib import Path
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from testcontainers.postgres import PostgresContainer

from koma.core.database import setup_db_session
from koma.uow import create_uow_factory

# Settings validation is relaxed for the app imported by the API tests
os.environ.setdefault("APP_ENV", "test")

TABLES = (
    "mint_events",
    "burn_events",
    "transfer_events",
    "blacklisted_events",
    "unblacklisted_events",
    "token_snapshots",
    "system_alerts",
)

BASE_TIMESTAMP = 1_700_000_000

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
ADMIN = "0x" + "d4" * 20
ZERO = "0x" + "00" * 20

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(scope="session")
def postgres_container():
    """Provide session-scoped PostgreSQL container with migrations applied.

    Container starts once per test session and is reused across all tests.
    Migrations run in a subprocess so alembic's own event loop stays out of
    the test event loops.
    """
    with PostgresContainer(
        image="postgres:17",
        username="test",
        password="test",
        dbname="test_koma",
    ) as container:
        env = os.environ.copy()
        env["DATABASE_URL"] = container.get_connection_url(driver="psycopg")

        subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True,
            env=env,
            cwd=PROJECT_ROOT,
        )

        yield container


@pytest.fixture(scope="session", autouse=True)
def utc_timezone():
    """Enforce UTC timezone for all tests."""
    os.environ["TZ"] = "UTC"
    yield


@pytest_asyncio.fixture(scope="function")
async def session(postgres_container) -> AsyncGenerator[AsyncSession, None]:
    """Provide function-scoped database session with table truncation.

    Each test gets a fresh session with empty tables (truncated after each test).
    """
    db_url = postgres_container.get_connection_url(driver="psycopg")
    session_factory = setup_db_session(db_url, pool_size=5)

    async with session_factory() as session:
        yield session

        await session.rollback()
        await session.execute(text(f"TRUNCATE {', '.join(TABLES)}"))
        await session.commit()

    await session.bind.dispose()


@pytest_asyncio.fixture(scope="function")
async def uow_factory(session: AsyncSession):
    """Provide function-scoped UnitOfWork factory sharing the test session's engine."""
    session_factory = async_sessionmaker(
        bind=session.bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return create_uow_factory(session_factory)


class FakeSubgraph:
    """In-memory subgraph honouring first/skip/blockNumber_gt and ascending order.

    ``fail(collection, exc, from_skip)`` makes every page of a collection at or
    beyond ``from_skip`` raise ``exc``; ``malform(collection, from_skip)`` makes
    those pages come back without the collection key.
    """

    COLLECTION = re.compile(r"(\w+)\(\s*first:")

    def __init__(self):
        self.entities: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.failures: dict[str, tuple[Exception, int]] = {}
        self.malformed: dict[str, int] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.closed = False

    def add(self, collection: str, *entities: dict[str, Any]) -> None:
        self.entities[collection].extend(entities)

    def fail(self, collection: str, exc: Exception, from_skip: int = 0) -> None:
        self.failures[collection] = (exc, from_skip)

    def malform(self, collection: str, from_skip: int = 0) -> None:
        self.malformed[collection] = from_skip

    def heal(self, collection: str) -> None:
        self.failures.pop(collection, None)
        self.malformed.pop(collection, None)

    def calls_for(self, collection: str) -> list[dict[str, Any]]:
        return [variables for name, variables in self.calls if name == collection]

    async def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        variables = variables or {}
        collection = self.COLLECTION.search(query).group(1)
        self.calls.append((collection, dict(variables)))

        if collection in self.failures:
            exc, from_skip = self.failures[collection]
            if variables["skip"] >= from_skip:
                raise exc

        if collection in self.malformed and variables["skip"] >= self.malformed[collection]:
            return {}

        above = [
            e for e in self.entities[collection] if int(e["blockNumber"]) > variables["blockNumber"]
        ]
        matching = sorted(above, key=lambda e: int(e["blockNumber"]))
        skip, first = variables["skip"], variables["first"]
        return {collection: matching[skip : skip + first]}

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def subgraph() -> FakeSubgraph:
    return FakeSubgraph()


def _tx_hash(block: int, log_index: int, salt: int = 0) -> str:
    return "0x" + f"{salt:016x}{block:024x}{log_index:024x}"


def _base(block: int, log_index: int, tx_hash: str | None) -> dict[str, Any]:
    return {
        "id": f"{block}-{log_index}",
        "blockNumber": str(block),
        "logIndex": str(log_index),
        "timestamp": str(BASE_TIMESTAMP + block * 12),
        "transactionHash": tx_hash or _tx_hash(block, log_index),
    }


@pytest.fixture
def raw_mint():
    def build(block, amount=100_000_000, to=ALICE, log_index=0, minter=ADMIN, tx_hash=None):
        return {
            **_base(block, log_index, tx_hash),
            "to": to,
            "amount": str(amount),
            "minter": minter,
        }

    return build


@pytest.fixture
def raw_burn():
    def build(block, amount=100_000_000, owner=ALICE, log_index=0, burner=ADMIN, tx_hash=None):
        return {
            **_base(block, log_index, tx_hash),
            "from": owner,
            "amount": str(amount),
            "burner": burner,
        }

    return build


@pytest.fixture
def raw_transfer():
    def build(block, amount=100_000_000, sender=ALICE, to=BOB, log_index=0, tx_hash=None):
        base = _base(block, log_index, tx_hash)
        return {
            "id": base["id"],
            "blockNumber": base["blockNumber"],
            "logIndex": base["logIndex"],
            "blockTimestamp": base["timestamp"],
            "txhash": base["transactionHash"],
            "from": sender,
            "to": to,
            "amount": str(amount),
        }

    return build


@pytest.fixture
def raw_blacklisted():
    def build(block, account=CAROL, log_index=0, blacklister=ADMIN, tx_hash=None):
        return {**_base(block, log_index, tx_hash), "account": account, "blacklister": blacklister}

    return build


@pytest.fixture
def raw_unblacklisted(raw_blacklisted):
    return raw_blacklisted
