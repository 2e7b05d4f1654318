"""
SQLAlchemy 2.0 async DeclarativeBase for MTG Price Sync.

All models inherit from this Base.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all MTG Price Sync database models."""
    pass
