"""
MTG Price Sync: Card Price Model

One row per card with the reconciled canonical price and every vendor's
latest price, all in USD. Written in batches by the price dump import.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DECIMAL, TIMESTAMP, String, func
from sqlalchemy.orm import Mapped, mapped_column

from pricesync.models.base import Base


class CardPrice(Base):
    """
    Reconciled prices for one card.

    card_id is the MTGJSON card uuid. normal/foil hold the first non-zero
    vendor price in precedence order; vendor columns are 0 when that vendor
    had no price.
    """

    __tablename__ = "card_prices"

    card_id: Mapped[str] = mapped_column(String, primary_key=True, comment="MTGJSON card uuid")
    normal: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False, default=0)
    foil: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False, default=0)

    tcg_normal: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False, default=0)
    tcg_foil: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False, default=0)
    cardmarket_normal: Mapped[Decimal] = mapped_column(
        DECIMAL(10, 2), nullable=False, default=0, comment="Converted to USD"
    )
    cardmarket_foil: Mapped[Decimal] = mapped_column(
        DECIMAL(10, 2), nullable=False, default=0, comment="Converted to USD"
    )
    cardkingdom_normal: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False, default=0)
    cardkingdom_foil: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False, default=0)
    cardsphere_normal: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False, default=0)
    cardsphere_foil: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False, default=0)
    cardhoarder_normal: Mapped[Decimal] = mapped_column(
        DECIMAL(10, 2), nullable=False, default=0, comment="MTGO price"
    )
    cardhoarder_foil: Mapped[Decimal] = mapped_column(
        DECIMAL(10, 2), nullable=False, default=0, comment="MTGO price"
    )

    last_updated: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        comment="Last time this price row was written",
    )

    def __repr__(self) -> str:
        return (
            f"<CardPrice card_id={self.card_id!r} "
            f"normal={self.normal} foil={self.foil}>"
        )
