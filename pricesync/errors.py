"""
MTG Price Sync: Exception Types

Not-found lookups are not exceptions; they come back as None.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pricesync.pipeline.importer import ImportSummary


class ScryfallAPIError(Exception):
    """A Scryfall request failed with a non-404 status or a transport error."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DumpFormatError(Exception):
    """The price dump failed structural validation."""


class ReconcileError(Exception):
    """A single dump entry could not be reconciled into a price row."""

    def __init__(self, card_id: str, message: str):
        super().__init__(f"{card_id}: {message}")
        self.card_id = card_id


class BatchImportError(Exception):
    """Too many store writes failed during a batch import."""

    def __init__(self, message: str, summary: ImportSummary):
        super().__init__(message)
        self.summary = summary
