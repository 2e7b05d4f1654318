"""
End-to-end: dump file on disk → streaming reader → importer → store.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Callable

import httpx
import pytest
import respx

from factories import RecordingStore, paper_entry, zip_dump
from pricesync.pipeline.dump_reader import iter_raw_entries
from pricesync.pipeline.importer import BatchImporter
from pricesync.pipeline.mtgjson import PriceDumpSyncer
from pricesync.pipeline.price_store import SqlPriceStore

DUMP_URL = "https://mtgjson.test/api/v5/AllPricesToday.json.zip"


@pytest.mark.asyncio
async def test_single_card_dump_produces_one_batch(
    write_dump: Callable[..., Path], recording_store: RecordingStore
) -> None:
    path = write_dump({"abc-123": paper_entry(normal={"2024-06-01": "3.50"})})
    importer = BatchImporter(recording_store, batch_size=100)

    summary = await importer.import_entries(iter_raw_entries(path))

    assert len(recording_store.batches) == 1
    batch = recording_store.batches[0]
    assert list(batch) == ["abc-123"]
    assert batch["abc-123"].normal == Decimal("3.5")
    assert batch["abc-123"].foil == Decimal("0")
    assert summary.imported == 1


@pytest.mark.asyncio
async def test_full_sync_into_sqlite(tmp_path: Path, price_store: SqlPriceStore) -> None:
    entries = {
        "abc-123": paper_entry(normal={"2024-05-31": "3.00", "2024-06-01": "3.50"}),
        "eur-card": paper_entry(
            vendor="cardmarket", foil={"2024-06-01": "10.00"}, currency="EUR"
        ),
        "worthless": paper_entry(normal={"2024-06-01": "0"}),
    }
    syncer = PriceDumpSyncer(price_store, data_dir=tmp_path / "data", dump_url=DUMP_URL)

    with respx.mock() as mock:
        mock.get(DUMP_URL).mock(return_value=httpx.Response(200, content=zip_dump(entries)))
        summary = await syncer.sync()

    assert summary.imported == 2
    assert summary.dropped == 1

    bolt = await price_store.get_price("abc-123")
    assert bolt is not None
    assert bolt.normal == Decimal("3.50")
    assert bolt.tcg_normal == Decimal("3.50")

    eur = await price_store.get_price("eur-card")
    assert eur is not None
    assert eur.cardmarket_foil == Decimal("11.00")
    assert eur.foil == Decimal("11.00")

    assert await price_store.get_price("worthless") is None
