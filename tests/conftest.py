"""
MTG Price Sync: Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- File-backed SQLite price store (aiosqlite) per test
- Recording in-memory store
- Price dump writer
- Async test support via pytest-asyncio
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, AsyncGenerator, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from factories import RecordingStore, dump_document
from pricesync.pipeline.price_store import SqlPriceStore


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

pytest_plugins = ("pytest_asyncio",)


# ---------------------------------------------------------------------------
# Store Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database file for each test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'prices.db'}", echo=False)
    yield engine
    await engine.dispose()


@pytest.fixture
async def price_store(db_engine: AsyncEngine) -> SqlPriceStore:
    """Initialized SqlPriceStore on the per-test database."""
    store = SqlPriceStore(db_engine)
    await store.init_database()
    return store


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()


# ---------------------------------------------------------------------------
# Dump Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def write_dump(tmp_path: Path) -> Callable[..., Path]:
    """Write a dump JSON document to disk and return its path."""

    def _write(entries: dict[str, Any], name: str = "AllPricesToday.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(dump_document(entries)), encoding="utf-8")
        return path

    return _write
