"""Tests for the sync_events CLI command."""

import pytest

from koma.cli.sync_events import async_main, parse_args


def test_parse_args_defaults():
    args = parse_args([])

    assert args.category is None
    assert not args.snapshot
    assert not args.dry_run


def test_parse_args_repeatable_category():
    args = parse_args(["--category", "mint", "--category", "transfer", "--snapshot", "-v"])

    assert args.category == ["mint", "transfer"]
    assert args.snapshot
    assert args.verbose


def test_parse_args_rejects_unknown_category():
    with pytest.raises(SystemExit):
        parse_args(["--category", "swap"])


@pytest.mark.asyncio
async def test_missing_subgraph_url_exits_with_error(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("SUBGRAPH_URL", "")

    assert await async_main([]) == 1


@pytest.mark.asyncio
async def test_invalid_configuration_exits_with_error(monkeypatch):
    """Outside test environments a missing SUBGRAPH_URL fails settings validation."""
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("SUBGRAPH_URL", "")
    monkeypatch.delenv("INDEXER_ENABLED", raising=False)

    assert await async_main([]) == 1
