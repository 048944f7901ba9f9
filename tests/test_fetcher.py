"""Tests for paginated event fetching."""

import pytest

from koma.services.exceptions import SubgraphNetworkError
from koma.services.indexer.categories import MINT
from koma.services.indexer.fetcher import fetch_events


@pytest.mark.asyncio
async def test_pages_until_short_page(subgraph, raw_mint):
    """250 events with page size 100: three requests, the last one short."""
    subgraph.add("mints", *(raw_mint(block) for block in range(1, 251)))

    result = await fetch_events(subgraph, MINT, 0, page_size=100)

    assert result.complete
    assert len(result) == 250
    assert [call["skip"] for call in subgraph.calls_for("mints")] == [0, 100, 200]


@pytest.mark.asyncio
async def test_exact_multiple_stops_on_empty_page(subgraph, raw_mint):
    subgraph.add("mints", *(raw_mint(block) for block in range(1, 201)))

    result = await fetch_events(subgraph, MINT, 0, page_size=100)

    assert len(result) == 200
    assert [call["skip"] for call in subgraph.calls_for("mints")] == [0, 100, 200]


@pytest.mark.asyncio
async def test_lower_bound_is_fixed_for_every_page(subgraph, raw_mint):
    subgraph.add("mints", *(raw_mint(block) for block in range(1, 31)))

    result = await fetch_events(subgraph, MINT, 10, page_size=5)

    assert [int(e["blockNumber"]) for e in result.events] == list(range(11, 31))
    assert {call["blockNumber"] for call in subgraph.calls_for("mints")} == {10}


@pytest.mark.asyncio
async def test_failed_page_returns_partial_result(subgraph, raw_mint):
    """A failing second page keeps the first page and marks the result incomplete."""
    subgraph.add("mints", *(raw_mint(block) for block in range(1, 251)))
    subgraph.fail("mints", SubgraphNetworkError("boom"), from_skip=100)

    result = await fetch_events(subgraph, MINT, 0, page_size=100)

    assert not result.complete
    assert len(result) == 100


@pytest.mark.asyncio
async def test_failed_first_page_returns_nothing(subgraph):
    subgraph.fail("mints", SubgraphNetworkError("boom"))

    result = await fetch_events(subgraph, MINT, 0)

    assert not result.complete
    assert result.events == []


@pytest.mark.asyncio
async def test_empty_feed(subgraph):
    result = await fetch_events(subgraph, MINT, 0)

    assert result.complete
    assert result.events == []
    assert len(subgraph.calls_for("mints")) == 1


@pytest.mark.asyncio
async def test_page_without_collection_is_incomplete(subgraph, raw_mint):
    """A page missing its collection key after a full page is not the end of results."""
    subgraph.add("mints", *(raw_mint(5, log_index=i) for i in range(5)))
    subgraph.malform("mints", from_skip=3)

    result = await fetch_events(subgraph, MINT, 0, page_size=3)

    assert not result.complete
    assert len(result) == 3


@pytest.mark.asyncio
async def test_first_page_without_collection_is_incomplete(subgraph):
    subgraph.malform("mints")

    result = await fetch_events(subgraph, MINT, 0)

    assert not result.complete
    assert result.events == []
