"""
Models package: export all SQLAlchemy models.
"""

from pricesync.models.base import Base
from pricesync.models.card_price import CardPrice

__all__ = ["Base", "CardPrice"]
