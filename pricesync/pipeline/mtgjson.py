"""
MTG Price Sync: MTGJSON Daily Price Dump

Downloads AllPricesToday.json.zip (published once a day), extracts it and
feeds it through the streaming reader and batch importer into the price
store.

Freshness: a sentinel file records when the last import fully succeeded.
If that was today (calendar day, local time) and the extracted JSON is still
on disk, the download is skipped and the existing file is re-imported.
Two runs at 23:59 and 00:01 therefore both download, and two runs at 00:01
and 23:58 on the same day download once.

On failure the zip is removed (best effort) and the error re-raised. The
extracted JSON is kept so a retry can reuse it; the sentinel is untouched.

Files under DATA_DIR:
    prices.zip                      transient download
    prices/AllPricesToday.json      extracted dump
    last_price_download.txt         ISO-8601 timestamp of last success
"""

from __future__ import annotations

import asyncio
import shutil
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Callable

import httpx
import structlog

from pricesync.config import settings
from pricesync.errors import DumpFormatError
from pricesync.pipeline.dump_reader import iter_raw_entries
from pricesync.pipeline.importer import BatchImporter, ImportSummary, PriceStore

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[float], None]


def local_now() -> datetime:
    return datetime.now().astimezone()


def _extract_dump(zip_path: Path, json_path: Path) -> None:
    """Extract the dump JSON from the zip. Blocking; run in a thread."""
    json_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with zipfile.ZipFile(zip_path) as archive:
            names = archive.namelist()
            member = json_path.name if json_path.name in names else next(
                (n for n in names if n.endswith(".json")), None
            )
            if member is None:
                raise DumpFormatError(f"No JSON file in price dump archive: {names}")
            with archive.open(member) as src, json_path.open("wb") as dst:
                shutil.copyfileobj(src, dst, length=settings.DUMP_CHUNK_SIZE_BYTES)
    except zipfile.BadZipFile as e:
        raise DumpFormatError(f"Price dump archive is corrupt: {e}") from e


class PriceDumpSyncer:
    """
    Keeps the local price store in step with the MTGJSON daily dump.

    Usage:
        syncer = PriceDumpSyncer(store)
        summary = await syncer.sync(on_progress=print)
    """

    def __init__(
        self,
        store: PriceStore,
        data_dir: Path | None = None,
        dump_url: str | None = None,
        importer: BatchImporter | None = None,
        chunk_size: int | None = None,
        clock: Callable[[], datetime] = local_now,
    ):
        self._store = store
        self._data_dir = Path(data_dir or settings.DATA_DIR)
        self._dump_url = dump_url or settings.PRICE_DUMP_URL
        self._importer = importer or BatchImporter(store)
        self._chunk_size = chunk_size or settings.DUMP_CHUNK_SIZE_BYTES
        self._clock = clock

    # -----------------------------------------------------------------------
    # Paths
    # -----------------------------------------------------------------------

    @property
    def zip_path(self) -> Path:
        return self._data_dir / "prices.zip"

    @property
    def extract_dir(self) -> Path:
        return self._data_dir / "prices"

    @property
    def json_path(self) -> Path:
        return self.extract_dir / settings.PRICE_DUMP_FILENAME

    @property
    def sentinel_path(self) -> Path:
        return self._data_dir / "last_price_download.txt"

    # -----------------------------------------------------------------------
    # Freshness sentinel
    # -----------------------------------------------------------------------

    def last_success(self) -> datetime | None:
        """Timestamp of the last fully successful import, if recorded."""
        if not self.sentinel_path.exists():
            return None
        try:
            raw = self.sentinel_path.read_text(encoding="utf-8").strip()
            return datetime.fromisoformat(raw)
        except (OSError, ValueError) as e:
            logger.error("price_dump_sentinel_unreadable", error=str(e))
            return None

    def is_fresh(self) -> bool:
        """True if the last successful import happened today (calendar day)."""
        last = self.last_success()
        if last is None:
            return False
        now = self._clock()
        if last.tzinfo is None:
            last = last.astimezone()
        return last.astimezone(now.tzinfo).date() == now.date()

    def _write_sentinel(self) -> None:
        self.sentinel_path.write_text(self._clock().isoformat(), encoding="utf-8")

    # -----------------------------------------------------------------------
    # File housekeeping
    # -----------------------------------------------------------------------

    def _remove_stale_artifacts(self) -> None:
        try:
            self.zip_path.unlink(missing_ok=True)
            if self.extract_dir.exists():
                shutil.rmtree(self.extract_dir)
        except OSError as e:
            logger.warning("price_dump_cleanup_failed", error=str(e))

    def _remove_zip(self) -> None:
        try:
            self.zip_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("price_dump_error_cleanup_failed", error=str(e))

    # -----------------------------------------------------------------------
    # Steps
    # -----------------------------------------------------------------------

    async def _download(self, on_progress: ProgressCallback | None) -> None:
        logger.info("price_dump_download_start", url=self._dump_url, path=str(self.zip_path))

        bytes_written = 0
        async with httpx.AsyncClient(
            timeout=settings.PRICE_DUMP_DOWNLOAD_TIMEOUT_SECONDS,
            follow_redirects=True,
        ) as client:
            async with client.stream("GET", self._dump_url) as response:
                response.raise_for_status()
                content_length = int(response.headers.get("Content-Length") or 0)

                with self.zip_path.open("wb") as f:
                    async for chunk in response.aiter_bytes(self._chunk_size):
                        f.write(chunk)
                        bytes_written += len(chunk)
                        if on_progress and content_length:
                            on_progress(min(bytes_written / content_length * 100, 100.0))

                status_code = response.status_code

        logger.info(
            "price_dump_download_complete",
            status_code=status_code,
            bytes_written=bytes_written,
        )

    async def _import(self, json_path: Path) -> ImportSummary:
        return await self._importer.import_entries(
            iter_raw_entries(json_path, self._chunk_size)
        )

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def sync(
        self,
        on_progress: ProgressCallback | None = None,
        force: bool = False,
    ) -> ImportSummary:
        """
        Bring the price store up to date with today's dump.

        Args:
            on_progress: Called with download progress in percent (0-100).
            force: Download even if today's dump was already imported.

        Returns:
            ImportSummary of the import that ran.

        Raises:
            httpx.HTTPError: If the download fails.
            DumpFormatError: If the archive or JSON is invalid.
            BatchImportError: If store writes fail beyond tolerance.
        """
        await self._store.init_database()
        self._data_dir.mkdir(parents=True, exist_ok=True)

        try:
            if not force and self.is_fresh() and self.json_path.exists():
                logger.info(
                    "price_dump_reusing_extracted_file",
                    path=str(self.json_path),
                    last_success=self.last_success().isoformat(),
                )
                return await self._import(self.json_path)

            logger.info("price_dump_refresh_start", force=force)
            self._remove_stale_artifacts()

            await self._download(on_progress)

            zip_size = self.zip_path.stat().st_size
            if zip_size == 0:
                raise DumpFormatError("Downloaded zip file is empty")

            logger.info("price_dump_extracting", zip_bytes=zip_size, path=str(self.extract_dir))
            await asyncio.to_thread(_extract_dump, self.zip_path, self.json_path)
            self.zip_path.unlink()

            if not self.json_path.exists():
                raise DumpFormatError(f"Extracted JSON file not found at: {self.json_path}")
            json_size = self.json_path.stat().st_size
            if json_size == 0:
                raise DumpFormatError("Extracted JSON file is empty")

            logger.info("price_dump_extracted", json_bytes=json_size)
            summary = await self._import(self.json_path)

            self._write_sentinel()
            logger.info("price_dump_sync_complete", imported=summary.imported)
            return summary

        except Exception as e:
            logger.error(
                "price_dump_sync_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            self._remove_zip()
            raise
