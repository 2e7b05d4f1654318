"""
MTG Price Sync: Price Reconciler

Collapses up to five vendor price histories for one card into a single
canonical normal/foil pair.

For each vendor and finish the value at the greatest ISO date key is taken
(ISO-8601 strings sort chronologically). Cardmarket is converted EUR→USD
only when it declares currency "EUR". The canonical price is the first
non-zero value in PRICE_PRECEDENCE. Cardhoarder is read from the mtgo
channel only; the four other vendors from paper.

Pure functions, no I/O.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, NamedTuple

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from pricesync.config import settings
from pricesync.errors import ReconcileError
from pricesync.utils.forex import ZERO, convert_eur_to_usd, to_decimal

logger = structlog.get_logger(__name__)

PAPER_VENDORS = ("tcgplayer", "cardmarket", "cardkingdom", "cardsphere")
MTGO_VENDORS = ("cardhoarder",)
PRICE_PRECEDENCE = ("tcgplayer", "cardmarket", "cardkingdom", "cardsphere", "cardhoarder")
FINISHES = ("normal", "foil")

META_KEY = "meta"


# ---------------------------------------------------------------------------
# Raw dump shape
# ---------------------------------------------------------------------------


class RetailPrices(BaseModel):
    """Date-keyed retail price series per finish."""
    normal: dict[str, Any] | None = None
    foil: dict[str, Any] | None = None


class VendorPrices(BaseModel):
    """One vendor's block inside a card's price entry."""
    currency: str | None = None
    retail: RetailPrices | None = None


class CardPriceSources(BaseModel):
    """
    All price sources for one card, as published in the dump.

    Buylist series and vendors outside PRECEDENCE are ignored.
    """
    paper: dict[str, VendorPrices] = Field(default_factory=dict)
    mtgo: dict[str, VendorPrices] = Field(default_factory=dict)

    @field_validator("paper", "mtgo", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class ReconciledPriceEntry(NamedTuple):
    """Canonical prices for one card, all in USD."""
    normal: Decimal
    foil: Decimal
    tcg_normal: Decimal
    tcg_foil: Decimal
    cardmarket_normal: Decimal
    cardmarket_foil: Decimal
    cardkingdom_normal: Decimal
    cardkingdom_foil: Decimal
    cardsphere_normal: Decimal
    cardsphere_foil: Decimal
    cardhoarder_normal: Decimal
    cardhoarder_foil: Decimal


# Field prefix used by ReconciledPriceEntry for each vendor
_FIELD_PREFIX = {
    "tcgplayer": "tcg",
    "cardmarket": "cardmarket",
    "cardkingdom": "cardkingdom",
    "cardsphere": "cardsphere",
    "cardhoarder": "cardhoarder",
}


# ---------------------------------------------------------------------------
# Series helpers
# ---------------------------------------------------------------------------


def latest_price(series: dict[str, Any] | None) -> Decimal:
    """
    Value at the most recent date in a price series.

    Examples:
        >>> latest_price({"2024-01-01": 5, "2024-01-05": 7})
        Decimal('7')
        >>> latest_price(None)
        Decimal('0')
    """
    if not series:
        return ZERO
    return to_decimal(series[max(series)])


def has_price_series(raw: Any) -> bool:
    """
    True if a raw dump entry has at least one non-empty retail series from a
    recognised vendor. Works on the untyped JSON so the reader can filter
    without validating every entry.
    """
    if not isinstance(raw, dict):
        return False

    for channel, vendors in (("paper", PAPER_VENDORS), ("mtgo", MTGO_VENDORS)):
        block = raw.get(channel)
        if not isinstance(block, dict):
            continue
        for vendor in vendors:
            vendor_block = block.get(vendor)
            if not isinstance(vendor_block, dict):
                continue
            retail = vendor_block.get("retail")
            if not isinstance(retail, dict):
                continue
            if any(isinstance(retail.get(f), dict) and retail.get(f) for f in FINISHES):
                return True
    return False


def _vendor_prices(
    vendor: str,
    prices: VendorPrices | None,
    eur_usd_rate: Decimal,
) -> tuple[Decimal, Decimal]:
    if prices is None or prices.retail is None:
        return ZERO, ZERO

    normal = latest_price(prices.retail.normal)
    foil = latest_price(prices.retail.foil)

    if vendor == "cardmarket" and prices.currency == "EUR":
        normal = convert_eur_to_usd(normal, eur_usd_rate)
        foil = convert_eur_to_usd(foil, eur_usd_rate)

    return normal, foil


def _first_nonzero(values: list[Decimal]) -> Decimal:
    for value in values:
        if value:
            return value
    return ZERO


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def reconcile_card(
    card_id: str,
    raw: dict[str, Any],
    eur_usd_rate: Decimal | None = None,
) -> ReconciledPriceEntry | None:
    """
    Reconcile one card's raw price sources.

    Args:
        card_id: Card identifier (used for error reporting only).
        raw: The card's entry from the dump's "data" object.
        eur_usd_rate: Cardmarket EUR→USD rate (default from config: 1.1).

    Returns:
        ReconciledPriceEntry, or None when both normal and foil resolve to 0.

    Raises:
        ReconcileError: If the entry does not have the expected shape or a
            price is negative.
    """
    rate = eur_usd_rate if eur_usd_rate is not None else settings.CARDMARKET_EUR_USD_RATE

    try:
        sources = CardPriceSources.model_validate(raw)
        resolved: dict[str, tuple[Decimal, Decimal]] = {}
        for vendor in PAPER_VENDORS:
            resolved[vendor] = _vendor_prices(vendor, sources.paper.get(vendor), rate)
        for vendor in MTGO_VENDORS:
            resolved[vendor] = _vendor_prices(vendor, sources.mtgo.get(vendor), rate)
    except ValidationError as e:
        raise ReconcileError(card_id, f"malformed price entry ({e.error_count()} errors)") from e
    except ValueError as e:
        raise ReconcileError(card_id, str(e)) from e

    normal = _first_nonzero([resolved[v][0] for v in PRICE_PRECEDENCE])
    foil = _first_nonzero([resolved[v][1] for v in PRICE_PRECEDENCE])

    if not normal and not foil:
        return None

    fields: dict[str, Decimal] = {"normal": normal, "foil": foil}
    for vendor, (vendor_normal, vendor_foil) in resolved.items():
        prefix = _FIELD_PREFIX[vendor]
        fields[f"{prefix}_normal"] = vendor_normal
        fields[f"{prefix}_foil"] = vendor_foil

    return ReconciledPriceEntry(**fields)
