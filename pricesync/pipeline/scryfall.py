"""
MTG Price Sync: Scryfall API Client

Single-card lookups, search and autocomplete against the Scryfall API.
Every outbound request goes through a RequestThrottle (100ms minimum spacing
by default) to stay inside Scryfall's rate limit.

Error policy:
- 404 on a single-card lookup or search is "not found", not an error.
- 429, 5xx and transport errors are retried with exponential backoff.
- Anything else, or exhausted retries, raises ScryfallAPIError.

Base URL: https://api.scryfall.com
"""

from __future__ import annotations

import asyncio
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

import httpx
import structlog
from pydantic import BaseModel, Field, field_validator

from pricesync.config import settings
from pricesync.errors import ScryfallAPIError
from pricesync.utils.throttle import RequestThrottle

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Pydantic Response Models
# ---------------------------------------------------------------------------


class CardPrices(BaseModel):
    """
    Scryfall price map. Each value is a numeric string or None.

    Scryfall omits or nulls prices it does not have; it never sends "0".
    """
    usd: str | None = None
    usd_foil: str | None = None
    usd_etched: str | None = None
    eur: str | None = None
    eur_foil: str | None = None
    tix: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def normalize_price(cls, v: Any) -> str | None:
        """Keep only parseable prices, as strings."""
        if v is None or v == "":
            return None
        try:
            Decimal(str(v))
        except (InvalidOperation, ValueError):
            return None
        return str(v)

    def as_decimal(self, field: str) -> Decimal | None:
        value = getattr(self, field)
        return Decimal(value) if value is not None else None


class PurchaseUris(BaseModel):
    """Vendor purchase links."""
    tcgplayer: str | None = None
    cardmarket: str | None = None
    cardhoarder: str | None = None


class ScryfallCard(BaseModel):
    """A Scryfall card object, trimmed to the fields the app uses."""
    id: str = Field(..., description="Scryfall card id")
    name: str = Field(..., description="Card name")
    set: str | None = Field(default=None, description="Set code, lower case")
    set_name: str | None = Field(default=None)
    collector_number: str = Field(default="")
    rarity: str = Field(default="")
    type_line: str = Field(default="")
    mana_cost: str | None = None
    oracle_text: str | None = None
    image_uris: dict[str, str] | None = None
    prices: CardPrices = Field(default_factory=CardPrices)
    purchase_uris: PurchaseUris = Field(default_factory=PurchaseUris)
    legalities: dict[str, str] = Field(default_factory=dict)

    @field_validator("prices", "purchase_uris", "legalities", mode="before")
    @classmethod
    def none_to_default(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def set_code(self) -> str:
        return self.set.upper() if self.set else "UNK"

    @property
    def set_display_name(self) -> str:
        return self.set_name or "Unknown Set"

    @property
    def image_url(self) -> str | None:
        if self.image_uris:
            return self.image_uris.get("normal") or self.image_uris.get("large")
        return None

    @property
    def usd_price(self) -> Decimal | None:
        return self.prices.as_decimal("usd")


class SearchResponse(BaseModel):
    """Paginated list response from /cards/search."""
    data: list[ScryfallCard] = Field(default_factory=list)
    has_more: bool = False
    total_cards: int = 0


# ---------------------------------------------------------------------------
# API Client
# ---------------------------------------------------------------------------


class ScryfallClient:
    """
    Async, throttled client for the Scryfall API.

    Usage:
        async with ScryfallClient() as client:
            card = await client.fetch_card_by_id("0000579f-7b35-4ed3-b44c-db2a538066fe")
            cards, has_more = await client.search_cards("t:goblin", page=1)
    """

    def __init__(
        self,
        base_url: str | None = None,
        min_request_interval: float | None = None,
        max_retries: int | None = None,
        base_backoff: float | None = None,
        throttle: RequestThrottle | None = None,
    ):
        self._base_url = base_url or settings.SCRYFALL_BASE_URL
        self._max_retries = (
            max_retries if max_retries is not None else settings.SCRYFALL_MAX_RETRIES
        )
        self._base_backoff = (
            base_backoff if base_backoff is not None else settings.SCRYFALL_BASE_BACKOFF_SECONDS
        )
        self._throttle = throttle or RequestThrottle(
            min_request_interval
            if min_request_interval is not None
            else settings.SCRYFALL_MIN_REQUEST_INTERVAL_SECONDS
        )
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> ScryfallClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "User-Agent": settings.SCRYFALL_USER_AGENT,
                "Accept": "application/json",
            },
            timeout=settings.SCRYFALL_TIMEOUT_SECONDS,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> dict[str, Any] | None:
        """
        Throttled GET with retry logic and exponential backoff.

        Returns None on 404 when allow_not_found is set.
        """
        assert self._client is not None, "Client not initialized. Use 'async with'."

        last_error: ScryfallAPIError | None = None

        for attempt in range(self._max_retries + 1):
            if attempt:
                wait_time = self._base_backoff * (2 ** (attempt - 1))
                await asyncio.sleep(wait_time)

            await self._throttle.wait()

            try:
                response = await self._client.get(path, params=params)
            except httpx.RequestError as e:
                logger.error(
                    "scryfall_request_error",
                    error=str(e),
                    attempt=attempt + 1,
                    path=path,
                )
                last_error = ScryfallAPIError(f"Scryfall request failed: {e}", body=str(e))
                continue

            if response.status_code == 404 and allow_not_found:
                logger.info("scryfall_not_found", path=path, params=params)
                return None

            if response.is_success:
                return response.json()

            logger.error(
                "scryfall_http_error",
                status_code=response.status_code,
                attempt=attempt + 1,
                path=path,
            )
            last_error = ScryfallAPIError(
                f"Scryfall API error: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
            if response.status_code == 429 or response.status_code >= 500:
                continue
            raise last_error

        assert last_error is not None
        raise last_error

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def fetch_card_by_id(self, card_id: str) -> ScryfallCard | None:
        """
        Fetch a single card by Scryfall id.

        Returns:
            ScryfallCard, or None if Scryfall has no such card.
        """
        logger.debug("scryfall_fetch_card", card_id=card_id)

        data = await self._request(f"/cards/{card_id}", allow_not_found=True)
        if data is None:
            return None
        return ScryfallCard.model_validate(data)

    async def fetch_card_by_name(self, name: str) -> ScryfallCard | None:
        """
        Fetch a single card by exact name.

        Returns:
            ScryfallCard, or None if no card has that exact name.
        """
        logger.debug("scryfall_fetch_card_by_name", card_name=name)

        data = await self._request(
            "/cards/named", params={"exact": name}, allow_not_found=True
        )
        if data is None:
            return None
        return ScryfallCard.model_validate(data)

    async def search_cards(self, query: str, page: int = 1) -> tuple[list[ScryfallCard], bool]:
        """
        Run a Scryfall full-text search.

        Args:
            query: Scryfall search syntax (e.g., "t:goblin cmc<=2").
            page: 1-based result page.

        Returns:
            (cards, has_more). A blank query or a query with no matches
            returns ([], False).
        """
        query = query.strip()
        if not query:
            return [], False

        logger.info("scryfall_search", query=query, page=page)

        data = await self._request(
            "/cards/search", params={"q": query, "page": page}, allow_not_found=True
        )
        if data is None:
            return [], False

        response = SearchResponse.model_validate(data)
        return response.data, response.has_more

    async def autocomplete(self, prefix: str) -> list[str]:
        """
        Card name suggestions for a partial name.

        Prefixes shorter than AUTOCOMPLETE_MIN_QUERY_LENGTH return [] without
        a request.
        """
        if len(prefix) < settings.AUTOCOMPLETE_MIN_QUERY_LENGTH:
            return []

        data = await self._request("/cards/autocomplete", params={"q": prefix})
        return list((data or {}).get("data") or [])

    async def fetch_set_cards(self, set_code: str) -> list[ScryfallCard]:
        """
        Fetch every card in a set, following has_more pagination.

        Args:
            set_code: Set code (e.g., "neo").
        """
        logger.info("scryfall_fetch_set", set_code=set_code)

        all_cards: list[ScryfallCard] = []
        page = 1
        while True:
            cards, has_more = await self.search_cards(f"set:{set_code}", page=page)
            all_cards.extend(cards)
            if not has_more:
                break
            page += 1

        logger.info(
            "scryfall_fetch_set_complete",
            set_code=set_code,
            total_cards=len(all_cards),
            pages=page,
        )
        return all_cards

    async def fetch_extended_cards(
        self,
        names: Iterable[str],
        concurrency: int | None = None,
    ) -> list[ScryfallCard]:
        """
        Look up many cards by exact name with bounded concurrency.

        At most `concurrency` lookups are in flight; the throttle still
        spaces the requests themselves. Names that are not found or fail are
        logged and left out. Results keep the input order.
        """
        limit = concurrency or settings.ENRICHMENT_CONCURRENCY
        if limit <= 0:
            raise ValueError(f"concurrency must be positive, got {limit}")

        semaphore = asyncio.Semaphore(limit)
        names = list(names)

        async def lookup(name: str) -> ScryfallCard | None:
            async with semaphore:
                try:
                    card = await self.fetch_card_by_name(name)
                except ScryfallAPIError as e:
                    logger.error(
                        "scryfall_enrichment_failed",
                        card_name=name,
                        status_code=e.status_code,
                        error=str(e),
                    )
                    return None
            if card is None:
                logger.warning("scryfall_enrichment_not_found", card_name=name)
            return card

        results = await asyncio.gather(*(lookup(name) for name in names))
        found = [card for card in results if card is not None]

        logger.info(
            "scryfall_enrichment_complete",
            requested=len(names),
            found=len(found),
            concurrency=limit,
        )
        return found
