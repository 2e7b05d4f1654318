"""
MTG Price Sync: Currency Normalization

Dump prices arrive as strings, ints, floats or Decimals depending on the
producer and the JSON parser. Everything is coerced to Decimal before any
arithmetic; money never goes through float.

Cardmarket quotes in EUR and is converted to USD at a fixed rate
(settings.CARDMARKET_EUR_USD_RATE). No buffer is applied: the dump is a
reference price table, not a trade calculation.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a raw price value to Decimal.

    None, empty strings and unparsable values become Decimal("0"), which the
    reconciler treats as "no price from this source".

    Examples:
        >>> to_decimal("3.50")
        Decimal('3.50')
        >>> to_decimal(None)
        Decimal('0')
    """
    if value is None or value == "":
        return ZERO
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        logger.debug("forex_unparsable_price", raw_value=str(value))
        return ZERO

    # NaN and Infinity parse fine but are not prices
    if not result.is_finite():
        return ZERO
    return result


def convert_eur_to_usd(amount_eur: Decimal, rate: Decimal) -> Decimal:
    """
    Convert EUR to USD at a fixed rate.

    Args:
        amount_eur: Amount in EUR.
        rate: EUR/USD rate (e.g., 1.1 means 1 EUR = 1.1 USD).

    Returns:
        Amount in USD, unrounded.

    Examples:
        >>> convert_eur_to_usd(Decimal("10.00"), Decimal("1.1"))
        Decimal('11.000')
    """
    if amount_eur < ZERO:
        raise ValueError(f"amount_eur must be non-negative, got {amount_eur}")

    if rate <= ZERO:
        raise ValueError(f"rate must be positive, got {rate}")

    return amount_eur * rate
