"""
Builders for test data: price dump documents, zipped dumps, Scryfall card
payloads, and an in-memory price store.
"""

from __future__ import annotations

import io
import json
import zipfile
from typing import Any


class RecordingStore:
    """In-memory PriceStore that records every batch it receives."""

    def __init__(self, fail_on: set[int] | None = None):
        self.batches: list[dict[str, Any]] = []
        self.init_calls = 0
        self._fail_on = fail_on or set()
        self._calls = 0

    async def init_database(self) -> None:
        self.init_calls += 1

    async def update_prices(self, batch: dict[str, Any]) -> None:
        call = self._calls
        self._calls += 1
        if call in self._fail_on:
            raise RuntimeError(f"store write {call} failed")
        self.batches.append(dict(batch))

    @property
    def rows(self) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for batch in self.batches:
            merged.update(batch)
        return merged


# ---------------------------------------------------------------------------
# Price dump
# ---------------------------------------------------------------------------


def paper_entry(
    vendor: str = "tcgplayer",
    normal: dict[str, Any] | None = None,
    foil: dict[str, Any] | None = None,
    currency: str = "USD",
) -> dict[str, Any]:
    """One card's dump entry with a single paper vendor."""
    retail: dict[str, Any] = {}
    if normal is not None:
        retail["normal"] = normal
    if foil is not None:
        retail["foil"] = foil
    return {"paper": {vendor: {"currency": currency, "retail": retail}}}


def dump_document(entries: dict[str, Any]) -> dict[str, Any]:
    """Full dump document; "meta" appears both top-level and inside data."""
    meta = {"date": "2024-06-01", "version": "5.2.2"}
    return {"meta": meta, "data": {"meta": meta, **entries}}


def zip_dump(entries: dict[str, Any], member: str = "AllPricesToday.json") -> bytes:
    """Zip archive bytes holding a dump document."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(member, json.dumps(dump_document(entries)))
    return buffer.getvalue()


def priced_entries(count: int, price: str = "1.00") -> dict[str, Any]:
    """count entries, each with one tcgplayer normal price."""
    return {
        f"card-{i:05d}": paper_entry(normal={"2024-06-01": price})
        for i in range(count)
    }


# ---------------------------------------------------------------------------
# Scryfall
# ---------------------------------------------------------------------------


def scryfall_card(
    card_id: str = "e3285e6b-3e79-4d7c-bf96-d920f973b122",
    name: str = "Lightning Bolt",
    usd: str | None = "2.15",
    **overrides: Any,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "object": "card",
        "id": card_id,
        "name": name,
        "set": "m11",
        "set_name": "Magic 2011",
        "collector_number": "149",
        "rarity": "common",
        "mana_cost": "{R}",
        "type_line": "Instant",
        "oracle_text": "Lightning Bolt deals 3 damage to any target.",
        "image_uris": {
            "normal": "https://cards.scryfall.io/normal/front/e/3/e3285e6b.jpg",
            "large": "https://cards.scryfall.io/large/front/e/3/e3285e6b.jpg",
            "art_crop": "https://cards.scryfall.io/art_crop/front/e/3/e3285e6b.jpg",
        },
        "prices": {
            "usd": usd,
            "usd_foil": "12.99",
            "usd_etched": None,
            "eur": "1.80",
            "eur_foil": None,
            "tix": "0.02",
        },
        "purchase_uris": {
            "tcgplayer": "https://www.tcgplayer.com/product/1",
            "cardmarket": "https://www.cardmarket.com/en/Magic/Products/1",
            "cardhoarder": "https://www.cardhoarder.com/cards/1",
        },
        "legalities": {"standard": "not_legal", "modern": "legal", "legacy": "legal"},
    }
    payload.update(overrides)
    return payload
