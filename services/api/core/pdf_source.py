# services/api/core/pdf_source.py
"""
Resolves the bytes of a document's source PDF.

Order: memory cache -> disk cache (<sample_pdfs_dir>/<id>.pdf) -> the
uploaded original -> the given URL (httpx) -> a generated placeholder.
Whatever is found first is written to the disk cache so the original hash
stays stable across signings.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, Optional

import httpx
from cachetools import LRUCache
from fpdf import FPDF

from core.errors import SourceLoadError
from core.file_store import FileStore, sanitize_filename

logger = logging.getLogger(__name__)

# A4 in points
PLACEHOLDER_PAGE_SIZE = (595.28, 841.89)


def build_placeholder_pdf(
    title: str = "EMPLOYMENT CONTRACT",
    body: str = "This is a sample document for testing.",
) -> bytes:
    """Single A4 page with a title line and a body line."""
    width, height = PLACEHOLDER_PAGE_SIZE
    pdf = FPDF(orientation="P", unit="pt", format=(width, height))
    pdf.set_auto_page_break(auto=False)
    pdf.add_page()
    # fpdf measures y from the top; the lines sit 750pt / 700pt above the bottom
    pdf.set_font("Helvetica", "", 24)
    pdf.text(x=50, y=height - 750, text=title)
    pdf.set_font("Helvetica", "", 12)
    pdf.text(x=50, y=height - 700, text=body)
    return bytes(pdf.output())


async def fetch_pdf_bytes(url: str, timeout: float = 30.0) -> bytes:
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        r = await client.get(url)
        r.raise_for_status()
        return r.content


class PdfSource:
    def __init__(
        self,
        *,
        cache_dir: str,
        files: FileStore,
        storage=None,
        cache_size: int = 32,
        fetch_timeout: float = 30.0,
    ):
        self.cache_dir = Path(cache_dir)
        self.files = files
        self.storage = storage
        self.fetch_timeout = fetch_timeout
        self._memory: LRUCache = LRUCache(maxsize=max(1, cache_size))
        # document_id -> task loading it; concurrent callers share one fetch
        self._inflight: Dict[str, asyncio.Task] = {}
        self.hits = 0
        self.misses = 0

    def cache_info(self) -> dict:
        return {
            "size": len(self._memory),
            "maxsize": self._memory.maxsize,
            "inflight": len(self._inflight),
            "hits": self.hits,
            "misses": self.misses,
        }

    def _cache_path(self, document_id: str) -> Path:
        return self.cache_dir / f"{sanitize_filename(document_id)}.pdf"

    def invalidate(self, document_id: str) -> None:
        self._memory.pop(document_id, None)
        try:
            self._cache_path(document_id).unlink()
        except FileNotFoundError:
            pass

    async def get_pdf_bytes(self, document_id: str, pdf_url: Optional[str] = None) -> bytes:
        cached = self._memory.get(document_id)
        if cached is not None:
            self.hits += 1
            return cached
        self.misses += 1

        task = self._inflight.get(document_id)
        if task is None:
            task = asyncio.ensure_future(self._load(document_id, pdf_url))
            self._inflight[document_id] = task
            task.add_done_callback(lambda _t: self._inflight.pop(document_id, None))
        return await asyncio.shield(task)

    async def _load(self, document_id: str, pdf_url: Optional[str]) -> bytes:
        data = await self._resolve(document_id, pdf_url)
        self._memory[document_id] = data
        return data

    async def _resolve(self, document_id: str, pdf_url: Optional[str]) -> bytes:
        cache_path = self._cache_path(document_id)
        if cache_path.is_file():
            logger.info(f"Loaded PDF from cache: {document_id}")
            return await asyncio.to_thread(cache_path.read_bytes)

        data = await self._read_local_original(document_id, pdf_url)

        if data is None and pdf_url:
            logger.info(f"Fetching PDF from URL: {pdf_url}")
            try:
                data = await fetch_pdf_bytes(pdf_url, timeout=self.fetch_timeout)
            except httpx.HTTPError as e:
                raise SourceLoadError(
                    f"Failed to fetch PDF from {pdf_url}: {e}",
                    document_id=document_id,
                    stage="fetch",
                ) from e

        if data is None:
            logger.warning(f"No PDF found for {document_id}, creating placeholder")
            data = build_placeholder_pdf()

        await asyncio.to_thread(self._write_cache, cache_path, data)
        return data

    async def _read_local_original(self, document_id: str, pdf_url: Optional[str]) -> Optional[bytes]:
        candidates = [pdf_url]
        if self.storage is not None:
            record = self.storage.get_audit(document_id)
            if record is not None:
                candidates.insert(0, record.original_source_location)

        for location in candidates:
            path = self.files.uploaded_path(location)
            if path is not None and path.is_file():
                logger.info(f"Loaded uploaded original for {document_id}: {path.name}")
                return await asyncio.to_thread(path.read_bytes)
        return None

    def _write_cache(self, path: Path, data: bytes) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            # Cache only; the bytes are still usable for this request
            logger.warning(f"Could not cache PDF at {path}: {e}")
