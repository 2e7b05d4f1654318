"""
MTG Price Sync: Application Entrypoint

Configures structlog, creates the async SQLAlchemy engine, and runs one
command.

Run via:
    python -m pricesync.main sync [--force]
    python -m pricesync.main price <scryfall_card_id>
    python -m pricesync.main search "t:goblin" [--page 2]
    python -m pricesync.main autocomplete "light"
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from pricesync.config import settings
from pricesync.pipeline.mtgjson import PriceDumpSyncer
from pricesync.pipeline.price_cache import PriceCache
from pricesync.pipeline.price_store import SqlPriceStore
from pricesync.pipeline.scryfall import ScryfallClient


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def _configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    # Configure stdlib logging first (for third-party libraries)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Database Setup
# ---------------------------------------------------------------------------


def create_db_engine(database_url: str | None = None) -> AsyncEngine:
    """
    Create the SQLAlchemy async engine for the price store.

    The DATABASE_URL is read from settings (env variable DATABASE_URL).
    """
    logger = structlog.get_logger(__name__)
    url = database_url or settings.DATABASE_URL

    logger.info("database_engine_initializing", database_url=url)
    return create_async_engine(url, echo=False, pool_pre_ping=True)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def run_sync(engine: AsyncEngine, force: bool) -> int:
    """Import today's price dump. Returns the number of rows written."""
    logger = structlog.get_logger(__name__)
    store = SqlPriceStore(engine)
    syncer = PriceDumpSyncer(store)

    last_reported = -10.0

    def report(progress: float) -> None:
        nonlocal last_reported
        if progress >= last_reported + 10 or progress >= 100:
            logger.info("price_dump_download_progress", progress=round(progress, 1))
            last_reported = progress

    summary = await syncer.sync(on_progress=report, force=force)
    print(summary.model_dump_json(indent=2))
    return summary.imported


async def run_price(card_id: str) -> Any:
    async with ScryfallClient() as client:
        cache = PriceCache(client)
        price = await cache.get_price(card_id)
    print(price if price is not None else "no price")
    return price


async def run_search(query: str, page: int) -> None:
    async with ScryfallClient() as client:
        cards, has_more = await client.search_cards(query, page=page)
    for card in cards:
        print(f"{card.name} [{card.set_code} #{card.collector_number}] usd={card.prices.usd}")
    if has_more:
        print(f"... more results on page {page + 1}")


async def run_autocomplete(prefix: str) -> None:
    async with ScryfallClient() as client:
        names = await client.autocomplete(prefix)
    for name in names:
        print(name)


# ---------------------------------------------------------------------------
# CLI Entry
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Keep the local MTG price table in sync with Scryfall and MTGJSON.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="Import the MTGJSON daily price dump.")
    sync.add_argument(
        "--force",
        action="store_true",
        help="Download even if today's dump was already imported.",
    )

    price = sub.add_parser("price", help="Look up one card's USD price on Scryfall.")
    price.add_argument("card_id", help="Scryfall card id.")

    search = sub.add_parser("search", help="Search Scryfall.")
    search.add_argument("query", help="Scryfall search syntax.")
    search.add_argument("--page", type=int, default=1, help="Result page (default: 1).")

    autocomplete = sub.add_parser("autocomplete", help="Suggest card names.")
    autocomplete.add_argument("prefix", help="Partial card name (2+ characters).")

    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> None:
    """
    Application entrypoint.

    Execution order:
    1. Configure logging (structlog JSON)
    2. Create the database engine (sync only)
    3. Run the requested command, then dispose the engine
    """
    args = parse_args(argv)
    _configure_logging(log_level=settings.LOG_LEVEL)
    logger = structlog.get_logger(__name__)

    logger.info("price_sync_command_start", command=args.command)

    if args.command == "sync":
        engine = create_db_engine()
        try:
            await run_sync(engine, force=args.force)
        except Exception as e:
            logger.error(
                "price_sync_fatal_error",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
        finally:
            await engine.dispose()
    elif args.command == "price":
        await run_price(args.card_id)
    elif args.command == "search":
        await run_search(args.query, args.page)
    elif args.command == "autocomplete":
        await run_autocomplete(args.prefix)

    logger.info("price_sync_command_complete", command=args.command)


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
