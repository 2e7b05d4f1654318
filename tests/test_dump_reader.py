"""
Tests for the streaming dump reader (pricesync/pipeline/dump_reader.py).

Covers:
- Chunked reads reproduce the file byte for byte
- Envelope validation (empty, non-brace, whitespace padding)
- Streaming entries: meta skipped, unpriced entries skipped
- Malformed JSON surfaces as DumpFormatError
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable

import pytest

from factories import paper_entry
from pricesync.errors import DumpFormatError
from pricesync.pipeline.dump_reader import (
    iter_chunks,
    iter_entries,
    iter_raw_entries,
    parse,
    read_document,
    validate_envelope,
)


# ---------------------------------------------------------------------------
# Chunked reads
# ---------------------------------------------------------------------------


def test_chunked_read_matches_whole_file(tmp_path: Path) -> None:
    """Multi-chunk read is byte-identical to a single read."""
    path = tmp_path / "blob.json"
    content = ("{" + "é,ab\n" * 5000 + "}").encode("utf-8")
    path.write_bytes(content)

    chunks = list(iter_chunks(path, chunk_size=1000))

    assert len(chunks) > 1
    assert all(len(c) == 1000 for c in chunks[:-1])
    assert read_document(path, chunk_size=1000) == path.read_bytes()


def test_chunk_size_must_be_positive(tmp_path: Path) -> None:
    path = tmp_path / "x.json"
    path.write_text("{}")

    with pytest.raises(ValueError):
        list(iter_chunks(path, chunk_size=-1))


# ---------------------------------------------------------------------------
# Envelope validation
# ---------------------------------------------------------------------------


def test_validate_envelope_accepts_padded_object(tmp_path: Path) -> None:
    path = tmp_path / "ok.json"
    path.write_text("\n\n  {\"data\": {}}  \n" + " " * 50)

    validate_envelope(path, chunk_size=4)


def test_validate_envelope_rejects_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "empty.json"
    path.write_bytes(b"")

    with pytest.raises(DumpFormatError, match="empty"):
        validate_envelope(path)


def test_validate_envelope_rejects_array(tmp_path: Path) -> None:
    path = tmp_path / "array.json"
    path.write_text("[1, 2, 3]")

    with pytest.raises(DumpFormatError, match="does not start with"):
        validate_envelope(path)


def test_validate_envelope_rejects_truncated_file(tmp_path: Path) -> None:
    path = tmp_path / "truncated.json"
    path.write_text('{"data": {"a": {"paper": ')

    with pytest.raises(DumpFormatError):
        validate_envelope(path)


def test_validate_envelope_rejects_missing_file(tmp_path: Path) -> None:
    with pytest.raises(DumpFormatError, match="not found"):
        validate_envelope(tmp_path / "nope.json")


# ---------------------------------------------------------------------------
# Entry streaming
# ---------------------------------------------------------------------------


def test_meta_and_unpriced_entries_skipped(write_dump: Callable[..., Path]) -> None:
    path = write_dump(
        {
            "priced": paper_entry(normal={"2024-06-01": "1.00"}),
            "empty-series": paper_entry(normal={}),
            "no-sources": {},
            "mtgo-only": {"mtgo": {"cardhoarder": {"retail": {"foil": {"2024-06-01": 0.5}}}}},
        }
    )

    ids = [card_id for card_id, _ in iter_raw_entries(path)]

    assert ids == ["priced", "mtgo-only"]


def test_small_chunks_parse_same_entries(write_dump: Callable[..., Path]) -> None:
    """Chunk boundaries inside keys and numbers do not change the result."""
    entries: dict[str, Any] = {
        f"card-{i}": paper_entry(normal={"2024-06-01": f"{i}.25"}) for i in range(1, 40)
    }
    path = write_dump(entries)

    small = parse(path, chunk_size=7)
    large = parse(path, chunk_size=1024 * 1024)

    assert small == large
    assert len(small) == 39
    assert dict(small)["card-3"].normal == Decimal("3.25")


def test_iter_entries_drops_zero_and_malformed(write_dump: Callable[..., Path]) -> None:
    path = write_dump(
        {
            "good": paper_entry(foil={"2024-06-01": "2.00"}),
            "zero": paper_entry(normal={"2024-06-01": "0"}),
            "bad": {"paper": {"tcgplayer": {"retail": {"normal": {"2024-06-01": "1"}}, "currency": 5}}},
        }
    )

    result = dict(iter_entries(path))

    assert list(result) == ["good"]
    assert result["good"].foil == Decimal("2.00")


def test_malformed_json_raises_format_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text('{"data": {"a": {"paper": {,,}}}}')

    with pytest.raises(DumpFormatError, match="Malformed"):
        list(iter_raw_entries(path))


def test_dump_without_data_yields_nothing(tmp_path: Path) -> None:
    path = tmp_path / "nodata.json"
    path.write_text(json.dumps({"meta": {"date": "2024-06-01"}}))

    assert list(iter_raw_entries(path)) == []
