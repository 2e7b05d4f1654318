"""MTG Price Sync: local price table fed by Scryfall and the MTGJSON daily dump."""

__version__ = "0.1.0"
