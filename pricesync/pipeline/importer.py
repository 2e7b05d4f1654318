"""
MTG Price Sync: Batch Importer

Groups dump entries into fixed-size batches, reconciles each card, and writes
every non-empty batch through the price store. Batches are written one at a
time.

Failure policy:
- A card that fails reconciliation is logged, counted and skipped.
- A batch whose store write fails is counted; once more than
  max_failed_batches batches have failed the run aborts with
  BatchImportError. The default tolerance of 0 aborts on the first failure.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Protocol

import structlog
from pydantic import BaseModel

from pricesync.config import settings
from pricesync.engine.reconcile import ReconciledPriceEntry, reconcile_card
from pricesync.errors import BatchImportError, DumpFormatError, ReconcileError

logger = structlog.get_logger(__name__)


class PriceStore(Protocol):
    """Write interface of the persistent price store."""

    async def init_database(self) -> None: ...

    async def update_prices(self, batch: dict[str, ReconciledPriceEntry]) -> None: ...


class ImportSummary(BaseModel):
    """Outcome of one import run."""
    total_entries: int = 0
    imported: int = 0
    dropped: int = 0
    failed_cards: int = 0
    batches_written: int = 0
    batches_skipped: int = 0
    failed_batches: int = 0
    error: str | None = None


def _batched(entries: Iterable[tuple[str, Any]], size: int) -> Iterator[list[tuple[str, Any]]]:
    batch: list[tuple[str, Any]] = []
    for item in entries:
        batch.append(item)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


class BatchImporter:
    """
    Reconcile and persist raw dump entries in batches.

    Usage:
        importer = BatchImporter(store)
        summary = await importer.import_entries(iter_raw_entries(path))
    """

    def __init__(
        self,
        store: PriceStore,
        batch_size: int | None = None,
        max_failed_batches: int | None = None,
    ):
        self._store = store
        self._batch_size = batch_size or settings.IMPORT_BATCH_SIZE
        self._max_failed_batches = (
            max_failed_batches
            if max_failed_batches is not None
            else settings.IMPORT_MAX_FAILED_BATCHES
        )
        if self._batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self._batch_size}")

    def _reconcile_batch(
        self,
        batch: list[tuple[str, Any]],
        summary: ImportSummary,
    ) -> dict[str, ReconciledPriceEntry]:
        prices: dict[str, ReconciledPriceEntry] = {}
        for card_id, raw in batch:
            try:
                entry = reconcile_card(card_id, raw)
            except ReconcileError as e:
                summary.failed_cards += 1
                logger.warning("import_card_reconcile_failed", card_id=card_id, error=str(e))
                continue
            if entry is None:
                summary.dropped += 1
                continue
            prices[card_id] = entry
        return prices

    async def import_entries(
        self,
        entries: Iterable[tuple[str, Any]],
        total_hint: int | None = None,
    ) -> ImportSummary:
        """
        Import raw (card_id, entry) pairs.

        Args:
            entries: Raw dump entries, typically from iter_raw_entries().
            total_hint: Expected entry count, used for percentage progress.
                Taken from len(entries) when entries is a sized collection.

        Returns:
            ImportSummary with per-run counts.

        Raises:
            DumpFormatError: If no entries were supplied at all.
            BatchImportError: If store failures exceed max_failed_batches.
        """
        summary = ImportSummary()
        total = total_hint
        if total is None and hasattr(entries, "__len__"):
            total = len(entries)  # type: ignore[arg-type]
        progress_logged = 0

        logger.info(
            "import_start",
            batch_size=self._batch_size,
            total_entries=total,
            max_failed_batches=self._max_failed_batches,
        )

        for batch in _batched(entries, self._batch_size):
            summary.total_entries += len(batch)
            prices = self._reconcile_batch(batch, summary)

            if not prices:
                summary.batches_skipped += 1
            else:
                try:
                    await self._store.update_prices(prices)
                except Exception as e:
                    summary.failed_batches += 1
                    summary.error = f"{type(e).__name__}: {e}"
                    logger.error(
                        "import_batch_failed",
                        batch_cards=len(prices),
                        failed_batches=summary.failed_batches,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    if summary.failed_batches > self._max_failed_batches:
                        raise BatchImportError(
                            f"Price import aborted after {summary.failed_batches} failed batches",
                            summary,
                        ) from e
                else:
                    summary.batches_written += 1
                    summary.imported += len(prices)

            if total:
                progress = round(summary.total_entries / total * 100)
                if progress >= progress_logged + 5:
                    logger.info(
                        "import_progress",
                        processed=summary.total_entries,
                        total_entries=total,
                        progress=progress,
                    )
                    progress_logged = progress

        if summary.total_entries == 0:
            raise DumpFormatError("No valid card entries found in price data")

        logger.info("import_complete", **summary.model_dump())
        return summary
