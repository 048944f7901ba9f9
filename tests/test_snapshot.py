"""Tests for token snapshot materialization."""

import pytest
from sqlalchemy import select

from koma.models import SystemAlert, TokenSnapshot
from koma.repositories.token_snapshot import TokenSnapshotRepository
from koma.services.indexer.categories import BURN, MINT, TRANSFER
from koma.services.indexer.snapshot import take_snapshot

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
DAVE = "0x" + "e5" * 20


@pytest.mark.asyncio
async def test_snapshot_totals_and_supply_invariant(
    session, uow_factory, raw_mint, raw_burn, raw_transfer
):
    async with await uow_factory() as uow:
        await uow.mints.insert_if_absent(MINT.decode(raw_mint(1, amount=1_000, to=ALICE)))
        await uow.mints.insert_if_absent(MINT.decode(raw_mint(2, amount=2_000, to=BOB)))
        await uow.burns.insert_if_absent(BURN.decode(raw_burn(3, amount=300, owner=ALICE)))
        await uow.transfers.insert_if_absent(
            TRANSFER.decode(raw_transfer(4, amount=50, sender=ALICE, to=CAROL))
        )
        await uow.transfers.insert_if_absent(
            TRANSFER.decode(raw_transfer(5, amount=25, sender=BOB, to=ALICE))
        )

    snapshot = await take_snapshot(uow_factory, latest_block=5)

    assert snapshot is not None
    assert snapshot.total_minted == 3_000
    assert snapshot.total_burned == 300
    assert snapshot.total_supply == snapshot.total_minted - snapshot.total_burned
    # ALICE, BOB (mint recipients and senders) and CAROL (recipient)
    assert snapshot.unique_holders == 3
    assert snapshot.total_transactions == 2
    assert snapshot.latest_block_number == 5


@pytest.mark.asyncio
async def test_snapshots_are_appended(session, uow_factory, raw_mint):
    await take_snapshot(uow_factory, latest_block=0)

    async with await uow_factory() as uow:
        await uow.mints.insert_if_absent(MINT.decode(raw_mint(1, amount=10, to=DAVE)))

    await take_snapshot(uow_factory, latest_block=1)

    rows = (
        (await session.execute(select(TokenSnapshot).order_by(TokenSnapshot.snapshot_time)))
        .scalars()
        .all()
    )
    assert [row.total_supply for row in rows] == [0, 10]
    assert [row.unique_holders for row in rows] == [0, 1]


@pytest.mark.asyncio
async def test_amounts_larger_than_bigint_survive_round_trip(session, uow_factory, raw_mint):
    huge = 10**40 + 7
    async with await uow_factory() as uow:
        await uow.mints.insert_if_absent(MINT.decode(raw_mint(1, amount=huge)))

    snapshot = await take_snapshot(uow_factory, latest_block=1)

    async with await uow_factory() as uow:
        latest = await uow.snapshots.get_latest()

    assert snapshot.total_minted == huge
    assert latest.total_supply == huge


@pytest.mark.asyncio
async def test_snapshot_failure_records_error_alert(session, uow_factory, monkeypatch):
    async def broken(self):
        raise RuntimeError("holder query failed")

    monkeypatch.setattr(TokenSnapshotRepository, "count_unique_holders", broken)

    assert await take_snapshot(uow_factory, latest_block=3) is None

    alerts = (await session.execute(select(SystemAlert))).scalars().all()
    assert [alert.title for alert in alerts] == ["Snapshot Error"]
    assert "holder query failed" in alerts[0].description
