"""
MTG Price Sync: SQL Price Store

SQLAlchemy async implementation of the PriceStore write interface. Each batch
is upserted keyed by card_id in one transaction. Works on SQLite (the local
default, via aiosqlite) and PostgreSQL.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from pricesync.engine.reconcile import ReconciledPriceEntry
from pricesync.models import Base, CardPrice

logger = structlog.get_logger(__name__)

_PRICE_COLUMNS = ReconciledPriceEntry._fields


class SqlPriceStore:
    """
    Persist reconciled prices to the card_prices table.

    Usage:
        store = SqlPriceStore(engine)
        await store.init_database()
        await store.update_prices({"uuid": entry})
    """

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self._engine = engine
        self._session_factory = session_factory or async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._initialized = False

    async def init_database(self) -> None:
        """Create the card_prices table if it does not exist. Idempotent."""
        if self._initialized:
            return
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._initialized = True
        logger.info("price_store_initialized", dialect=self._engine.dialect.name)

    def _upsert_statement(self) -> Any:
        dialect = self._engine.dialect.name
        if dialect == "postgresql":
            insert = postgresql.insert
        elif dialect == "sqlite":
            insert = sqlite.insert
        else:
            raise NotImplementedError(f"Unsupported database dialect: {dialect}")

        stmt = insert(CardPrice)
        updates = {name: stmt.excluded[name] for name in (*_PRICE_COLUMNS, "last_updated")}
        return stmt.on_conflict_do_update(index_elements=["card_id"], set_=updates)

    async def update_prices(self, batch: dict[str, ReconciledPriceEntry]) -> None:
        """
        Upsert one batch of reconciled prices.

        Args:
            batch: card_id → ReconciledPriceEntry.
        """
        if not batch:
            return

        now = datetime.now(timezone.utc)
        rows = [
            {"card_id": card_id, **entry._asdict(), "last_updated": now}
            for card_id, entry in batch.items()
        ]

        async with self._session_factory() as session:
            await session.execute(self._upsert_statement(), rows)
            await session.commit()

        logger.debug("price_store_batch_written", count=len(rows))

    async def get_price(self, card_id: str) -> ReconciledPriceEntry | None:
        """Read one card's stored prices back."""
        async with self._session_factory() as session:
            row = await session.scalar(select(CardPrice).where(CardPrice.card_id == card_id))

        if row is None:
            return None
        return ReconciledPriceEntry(
            **{name: Decimal(str(getattr(row, name))) for name in _PRICE_COLUMNS}
        )
