"""
MTG Price Sync: Configuration & Constants

Every endpoint, interval, batch size and conversion rate lives here.
No hardcoded values in pipeline logic.

Usage:
    from pricesync.config import settings
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Central configuration for MTG Price Sync.

    Loads from environment variables with fallback defaults.
    """

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # -----------------------------------------------------------------------
    # Scryfall on-demand API
    # -----------------------------------------------------------------------
    SCRYFALL_BASE_URL: str = "https://api.scryfall.com"
    SCRYFALL_USER_AGENT: str = "MTGPriceApp/1.0"
    SCRYFALL_MIN_REQUEST_INTERVAL_SECONDS: float = 0.1   # 100ms between requests
    SCRYFALL_TIMEOUT_SECONDS: float = 30.0
    SCRYFALL_MAX_RETRIES: int = 2
    SCRYFALL_BASE_BACKOFF_SECONDS: float = 1.0
    AUTOCOMPLETE_MIN_QUERY_LENGTH: int = 2

    # Enrichment of many card names at once
    ENRICHMENT_CONCURRENCY: int = 4

    # -----------------------------------------------------------------------
    # On-demand price cache
    # -----------------------------------------------------------------------
    PRICE_CACHE_TTL_SECONDS: int = 3600   # 1 hour

    # -----------------------------------------------------------------------
    # MTGJSON daily price dump
    # -----------------------------------------------------------------------
    PRICE_DUMP_URL: str = "https://mtgjson.com/api/v5/AllPricesToday.json.zip"
    PRICE_DUMP_FILENAME: str = "AllPricesToday.json"
    PRICE_DUMP_DOWNLOAD_TIMEOUT_SECONDS: float = 300.0
    DATA_DIR: Path = Path("data")
    DUMP_CHUNK_SIZE_BYTES: int = 1024 * 1024   # 1 MiB

    # -----------------------------------------------------------------------
    # Batch import
    # -----------------------------------------------------------------------
    IMPORT_BATCH_SIZE: int = 100
    IMPORT_MAX_FAILED_BATCHES: int = 0   # 0 = first store failure aborts the run

    # -----------------------------------------------------------------------
    # Reconciliation
    # Cardmarket quotes in EUR; everything else is assumed USD
    # -----------------------------------------------------------------------
    CARDMARKET_EUR_USD_RATE: Decimal = Decimal("1.1")

    # -----------------------------------------------------------------------
    # Database
    # -----------------------------------------------------------------------
    DATABASE_URL: str = "sqlite+aiosqlite:///prices.db"

    # -----------------------------------------------------------------------
    # Logging
    # -----------------------------------------------------------------------
    LOG_LEVEL: str = "INFO"


# Singleton instance
settings = Settings()
