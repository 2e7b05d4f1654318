"""Initial schema: card_prices

Revision ID: 001_card_prices
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001_card_prices"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_PRICE_COLUMNS = (
    "normal",
    "foil",
    "tcg_normal",
    "tcg_foil",
    "cardmarket_normal",
    "cardmarket_foil",
    "cardkingdom_normal",
    "cardkingdom_foil",
    "cardsphere_normal",
    "cardsphere_foil",
    "cardhoarder_normal",
    "cardhoarder_foil",
)


def upgrade() -> None:
    op.create_table(
        "card_prices",
        sa.Column("card_id", sa.String(), nullable=False, comment="MTGJSON card uuid"),
        *(
            sa.Column(name, sa.DECIMAL(10, 2), nullable=False, server_default="0")
            for name in _PRICE_COLUMNS
        ),
        sa.Column(
            "last_updated",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("card_id"),
    )


def downgrade() -> None:
    op.drop_table("card_prices")
