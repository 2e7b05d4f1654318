"""
MTG Price Sync: On-Demand Price Cache

Time-bounded memo of Scryfall USD prices keyed by card id, in front of
ScryfallClient. One instance per application, passed to whoever needs
prices; clock and TTL are injected so tests can control time.

No compare-and-swap: two callers missing on the same id both fetch, and the
last write wins. The lookup is idempotent so this is harmless.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, NamedTuple, Protocol

import structlog

from pricesync.config import settings
from pricesync.pipeline.scryfall import ScryfallCard

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CardLookup(Protocol):
    async def fetch_card_by_id(self, card_id: str) -> ScryfallCard | None: ...


class CachedPrice(NamedTuple):
    price: Decimal
    timestamp: datetime


class PriceCache:
    """
    Cache of USD prices with a fixed TTL (1 hour by default).

    An entry is valid while now - timestamp < ttl. Lookups that return no
    price are not cached, so the next call checks again.

    Usage:
        async with ScryfallClient() as client:
            cache = PriceCache(client)
            price = await cache.get_price(card_id)
    """

    def __init__(
        self,
        client: CardLookup,
        ttl: timedelta | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._client = client
        self._ttl = ttl if ttl is not None else timedelta(seconds=settings.PRICE_CACHE_TTL_SECONDS)
        self._clock = clock
        self._entries: dict[str, CachedPrice] = {}

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def __len__(self) -> int:
        return len(self._entries)

    def _lookup(self, card_id: str) -> Decimal | None:
        cached = self._entries.get(card_id)
        if cached is None:
            return None
        if self._clock() - cached.timestamp < self._ttl:
            return cached.price
        del self._entries[card_id]
        return None

    async def get_price(self, card_id: str) -> Decimal | None:
        """
        USD price for a card, from cache when fresh, else from Scryfall.

        Returns:
            Decimal price, or None when the card is unknown or has no USD price.

        Raises:
            ScryfallAPIError: If the lookup fails.
        """
        price = self._lookup(card_id)
        if price is not None:
            logger.debug("price_cache_hit", card_id=card_id)
            return price

        logger.debug("price_cache_miss", card_id=card_id)
        card = await self._client.fetch_card_by_id(card_id)
        price = card.usd_price if card is not None else None
        if price is None:
            return None

        self._entries[card_id] = CachedPrice(price=price, timestamp=self._clock())
        return price

    def invalidate(self, card_id: str | None = None) -> None:
        """Drop one card's entry, or every entry when card_id is None."""
        if card_id is None:
            self._entries.clear()
        else:
            self._entries.pop(card_id, None)
