from pricesync.engine.reconcile import (
    PRICE_PRECEDENCE,
    ReconciledPriceEntry,
    has_price_series,
    latest_price,
    reconcile_card,
)

__all__ = [
    "PRICE_PRECEDENCE",
    "ReconciledPriceEntry",
    "has_price_series",
    "latest_price",
    "reconcile_card",
]
