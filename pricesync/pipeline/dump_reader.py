"""
MTG Price Sync: Streaming Dump Reader

Reads the extracted MTGJSON price dump (several hundred MB) without holding
it in memory. The file is consumed in fixed-size chunks (1 MiB default) and
parsed incrementally with ijson, one card entry at a time, so peak memory is
bounded by one chunk plus one entry.

Dump shape:
    {"meta": {...}, "data": {"<uuid>": {"paper": {...}, "mtgo": {...}}, ...}}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, BinaryIO, Iterator

import ijson
import structlog

from pricesync.config import settings
from pricesync.engine.reconcile import META_KEY, ReconciledPriceEntry, has_price_series, reconcile_card
from pricesync.errors import DumpFormatError, ReconcileError

logger = structlog.get_logger(__name__)

_WHITESPACE = b" \t\r\n"


# ---------------------------------------------------------------------------
# Chunked file access
# ---------------------------------------------------------------------------


def iter_chunks(path: Path, chunk_size: int | None = None) -> Iterator[bytes]:
    """
    Yield the file's bytes sequentially in chunks of at most chunk_size.

    Reading progress is logged every 5%.
    """
    size = chunk_size or settings.DUMP_CHUNK_SIZE_BYTES
    if size <= 0:
        raise ValueError(f"chunk_size must be positive, got {size}")

    total = path.stat().st_size
    bytes_read = 0
    last_logged = 0

    with path.open("rb") as f:
        while True:
            chunk = f.read(size)
            if not chunk:
                break
            bytes_read += len(chunk)

            progress = round(bytes_read / total * 100) if total else 100
            if progress >= last_logged + 5:
                logger.info(
                    "dump_read_progress",
                    progress=progress,
                    bytes_read=bytes_read,
                    total_bytes=total,
                )
                last_logged = progress

            yield chunk


def read_document(path: Path, chunk_size: int | None = None) -> bytes:
    """Read the whole file through iter_chunks. Only for small files and tests."""
    return b"".join(iter_chunks(path, chunk_size))


class _ChunkStream:
    """File-like adapter feeding iter_chunks output to ijson."""

    def __init__(self, chunks: Iterator[bytes]):
        self._chunks = chunks

    def read(self, size: int = -1) -> bytes:
        # ijson probes with read(0) to detect bytes vs text
        if size == 0:
            return b""
        return next(self._chunks, b"")


def _first_significant_byte(chunks: Iterator[bytes]) -> int | None:
    for chunk in chunks:
        stripped = chunk.lstrip(_WHITESPACE)
        if stripped:
            return stripped[0]
    return None


def _last_significant_byte(f: BinaryIO, file_size: int, chunk_size: int) -> int | None:
    end = file_size
    while end > 0:
        start = max(0, end - chunk_size)
        f.seek(start)
        stripped = f.read(end - start).rstrip(_WHITESPACE)
        if stripped:
            return stripped[-1]
        end = start
    return None


def validate_envelope(path: Path, chunk_size: int | None = None) -> None:
    """
    Check the dump looks like a single JSON object.

    The first and last non-whitespace bytes must be "{" and "}". Only the
    head and tail of the file are read.

    Raises:
        DumpFormatError: If the file is missing, empty or not brace-delimited.
    """
    size = chunk_size or settings.DUMP_CHUNK_SIZE_BYTES

    if not path.exists():
        raise DumpFormatError(f"Price dump not found at: {path}")

    file_size = path.stat().st_size
    if file_size == 0:
        raise DumpFormatError(f"Price dump is empty: {path}")

    with path.open("rb") as f:
        first = _first_significant_byte(iter(lambda: f.read(size), b""))
        last = _last_significant_byte(f, file_size, size)

    if first != ord("{") or last != ord("}"):
        raise DumpFormatError(
            "Invalid JSON format: content does not start with { or end with }"
        )


# ---------------------------------------------------------------------------
# Entry streaming
# ---------------------------------------------------------------------------


def iter_raw_entries(path: Path, chunk_size: int | None = None) -> Iterator[tuple[str, Any]]:
    """
    Stream (card_id, raw_entry) pairs from the dump's "data" object.

    Skips the "meta" key and entries with no usable price series.

    Raises:
        DumpFormatError: On malformed JSON.
    """
    validate_envelope(path, chunk_size)

    seen = 0
    kept = 0
    size = chunk_size or settings.DUMP_CHUNK_SIZE_BYTES
    stream = _ChunkStream(iter_chunks(path, size))
    try:
        for card_id, raw in ijson.kvitems(stream, "data", buf_size=size):
            seen += 1
            if card_id == META_KEY:
                continue
            if not has_price_series(raw):
                continue
            kept += 1
            yield card_id, raw
    except ijson.JSONError as e:
        raise DumpFormatError(f"Malformed price dump after {seen} entries: {e}") from e

    logger.info(
        "dump_entries_scanned",
        path=str(path),
        entries_seen=seen,
        entries_with_prices=kept,
    )


def iter_entries(
    path: Path,
    chunk_size: int | None = None,
) -> Iterator[tuple[str, ReconciledPriceEntry]]:
    """
    Stream reconciled entries. Dropped (all-zero) entries and entries that
    fail reconciliation are skipped; failures are logged.
    """
    for card_id, raw in iter_raw_entries(path, chunk_size):
        try:
            entry = reconcile_card(card_id, raw)
        except ReconcileError as e:
            logger.warning("dump_entry_reconcile_failed", card_id=card_id, error=str(e))
            continue
        if entry is not None:
            yield card_id, entry


def parse(path: Path, chunk_size: int | None = None) -> list[tuple[str, ReconciledPriceEntry]]:
    """
    Materialise every reconciled entry in the dump.

    Prefer iter_entries / BatchImporter for full-size dumps.
    """
    return list(iter_entries(path, chunk_size))
