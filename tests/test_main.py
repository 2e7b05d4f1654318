"""
Tests for CLI argument parsing (pricesync/main.py).
"""

from __future__ import annotations

import pytest

from pricesync.main import parse_args


def test_sync_defaults() -> None:
    args = parse_args(["sync"])
    assert args.command == "sync"
    assert args.force is False


def test_sync_force() -> None:
    assert parse_args(["sync", "--force"]).force is True


def test_search_page() -> None:
    args = parse_args(["search", "t:goblin", "--page", "3"])
    assert args.query == "t:goblin"
    assert args.page == 3


def test_price_and_autocomplete() -> None:
    assert parse_args(["price", "abc-123"]).card_id == "abc-123"
    assert parse_args(["autocomplete", "li"]).prefix == "li"


def test_command_required() -> None:
    with pytest.raises(SystemExit):
        parse_args([])
