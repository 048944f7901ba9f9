"""Repository layer tests for KOMA indexer.

Tests focus on logic beyond plain CRUD:
- Atomic deduplicating insert
- Derived blacklist status (latest event per account wins)
- Time-window aggregates and newest-first pagination
- Alert lifecycle
"""

from datetime import datetime, timezone

import pytest

from koma.models.system_alert import AlertSeverity
from koma.services.indexer.categories import BLACKLISTED, MINT, TRANSFER, UNBLACKLISTED

CAROL = "0x" + "c3" * 20
DAVE = "0x" + "e5" * 20
CAROL_BYTES = bytes.fromhex("c3" * 20)
DAVE_BYTES = bytes.fromhex("e5" * 20)


def block_time(block: int) -> datetime:
    """Timestamp the conftest builders assign to ``block``."""
    return datetime.fromtimestamp(1_700_000_000 + block * 12, tz=timezone.utc).replace(tzinfo=None)


async def blacklist(uow, raw):
    await uow.blacklisted.insert_if_absent(BLACKLISTED.decode(raw))


async def unblacklist(uow, raw):
    await uow.unblacklisted.insert_if_absent(UNBLACKLISTED.decode(raw))


@pytest.mark.asyncio
async def test_insert_if_absent_reports_duplicates(uow_factory, raw_mint):
    values = MINT.decode(raw_mint(4))

    async with await uow_factory() as uow:
        assert await uow.mints.insert_if_absent(values) is True
        assert await uow.mints.insert_if_absent(values) is False
        assert await uow.mints.exists(values["tx_hash"], values["log_index"])
        assert not await uow.mints.exists(values["tx_hash"], values["log_index"] + 1)
        assert await uow.mints.count() == 1


@pytest.mark.asyncio
async def test_unblacklist_after_blacklist_clears_status(uow_factory, raw_blacklisted):
    """Blacklisted at T1, unblacklisted at T2 > T1: not currently blacklisted."""
    async with await uow_factory() as uow:
        await blacklist(uow, raw_blacklisted(10, account=CAROL))
        await unblacklist(uow, raw_blacklisted(20, account=CAROL))

    async with await uow_factory() as uow:
        assert await uow.blacklist.get_currently_blacklisted() == []
        assert not await uow.blacklist.is_blacklisted(CAROL_BYTES)


@pytest.mark.asyncio
async def test_reblacklisted_account_is_listed_again(uow_factory, raw_blacklisted):
    """Blacklist, unblacklist, blacklist again: the latest event wins."""
    async with await uow_factory() as uow:
        await blacklist(uow, raw_blacklisted(10, account=CAROL))
        await unblacklist(uow, raw_blacklisted(20, account=CAROL))
        await blacklist(uow, raw_blacklisted(30, account=CAROL))
        await blacklist(uow, raw_blacklisted(25, account=DAVE))

    async with await uow_factory() as uow:
        entries = await uow.blacklist.get_currently_blacklisted()
        counts = await uow.blacklist.count_accounts()
        assert await uow.blacklist.is_blacklisted(CAROL_BYTES)

    assert [entry.account for entry in entries] == [CAROL_BYTES, DAVE_BYTES]
    assert entries[0].blacklisted_at == block_time(30)
    assert counts == (2, 1)


@pytest.mark.asyncio
async def test_unblacklist_in_same_block_later_log_wins(uow_factory, raw_blacklisted):
    async with await uow_factory() as uow:
        await blacklist(uow, raw_blacklisted(10, account=CAROL, log_index=0))
        await unblacklist(uow, raw_blacklisted(10, account=CAROL, log_index=1))

    async with await uow_factory() as uow:
        assert not await uow.blacklist.is_blacklisted(CAROL_BYTES)


@pytest.mark.asyncio
async def test_window_aggregates_and_recent_listing(uow_factory, raw_transfer):
    async with await uow_factory() as uow:
        for block, amount in ((1, 10), (2, 30), (3, 20)):
            await uow.transfers.insert_if_absent(
                TRANSFER.decode(raw_transfer(block, amount=amount))
            )

    start = block_time(2)

    async with await uow_factory() as uow:
        assert await uow.transfers.count(start) == 2
        assert await uow.transfers.sum_amount(start) == 50
        assert await uow.transfers.sum_amount(None, start) == 10
        recent = await uow.transfers.list_recent(limit=2, offset=0)
        largest = await uow.transfers.list_largest(None, None, limit=1)
        latest = await uow.transfers.get_latest()
        ranged = await uow.transfers.get_by_block_range(2, 3)

    assert [event.block_number for event in recent] == [3, 2]
    assert largest[0].amount == 30
    assert latest.block_number == 3
    assert [event.block_number for event in ranged] == [2, 3]


@pytest.mark.asyncio
async def test_alert_lifecycle(uow_factory):
    async with await uow_factory() as uow:
        first = await uow.alerts.create(AlertSeverity.WARNING, "First", "details")
        await uow.alerts.create(AlertSeverity.ERROR, "Second", "details")

    async with await uow_factory() as uow:
        assert await uow.alerts.resolve(first.id) is True

    async with await uow_factory() as uow:
        unresolved = await uow.alerts.list_unresolved()

    assert [alert.title for alert in unresolved] == ["Second"]
