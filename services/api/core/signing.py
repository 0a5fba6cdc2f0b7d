# services/api/core/signing.py
"""
Signing orchestration.

One request: validate -> load source bytes -> rasterize (thread pool) ->
write the signed file -> upsert the audit record. Requests for the same
document are serialized so two signings never interleave their audit
updates; different documents sign concurrently.
"""
from __future__ import annotations

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence

from adapters.base import StorageAdapter
from core.audit import AuditRecorder, calculate_hash
from core.errors import PersistenceError, ValidationError
from core.file_store import FileStore
from core.geometry import resolve_all
from core.pdf_source import PdfSource
from core.rasterize import SkippedField, rasterize
from models import (
    AuditRecord,
    FieldType,
    FieldValue,
    PageGeometry,
    build_field_value,
    is_empty,
    percent_to_pdf,
)

logger = logging.getLogger(__name__)


class SigningLocks:
    """One asyncio.Lock per document id, dropped once nobody holds it."""

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    @asynccontextmanager
    async def hold(self, document_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[document_id] = lock
        async with lock:
            yield


@dataclass
class SigningOutcome:
    document_id: str
    pdf_bytes: bytes
    original_hash: str
    signed_hash: str
    processed: int
    location: str
    audit: AuditRecord
    skipped: List[SkippedField] = field(default_factory=list)
    page_fallbacks: List[int] = field(default_factory=list)


class SigningService:
    def __init__(
        self,
        storage: StorageAdapter,
        source: PdfSource,
        files: FileStore,
        *,
        locks: Optional[SigningLocks] = None,
        strict_pages: bool = False,
        render_width: float = 800,
    ):
        self.storage = storage
        self.source = source
        self.files = files
        self.audit = AuditRecorder(storage)
        self.locks = locks or SigningLocks()
        self.strict_pages = strict_pages
        self.render_width = render_width

    async def sign(
        self,
        document_id: str,
        values: Sequence[FieldValue],
        pdf_url: Optional[str] = None,
    ) -> SigningOutcome:
        """Sign with values already placed in PDF points."""
        if not document_id:
            raise ValidationError("Missing pdfId")
        if values is None:
            raise ValidationError("Missing or invalid fields array", document_id=document_id)

        async with self.locks.hold(document_id):
            source_bytes = await self.source.get_pdf_bytes(document_id, pdf_url)
            return await self._sign_locked(document_id, source_bytes, list(values), pdf_url)

    async def sign_stored_fields(
        self,
        document_id: str,
        values_by_field_id: Mapping[str, Any],
        pdf_url: Optional[str] = None,
    ) -> SigningOutcome:
        """
        Sign using the document's stored field layout.

        Stored percentages are converted to PDF points against each page's
        own geometry, so the client only sends {field_id: value}.
        """
        if not document_id:
            raise ValidationError("Missing pdfId")

        fields = self.storage.list_fields(document_id)
        if not fields:
            raise ValidationError("Document has no fields to sign", document_id=document_id)

        known = {f.id for f in fields}
        unknown = sorted(set(values_by_field_id) - known)
        if unknown:
            raise ValidationError(f"Unknown field ids: {unknown}", document_id=document_id)

        missing = [
            f.label or f.id
            for f in fields
            if f.required
            and f.field_type is not FieldType.RADIO
            and not values_by_field_id.get(f.id)
        ]
        if missing:
            raise ValidationError(f"Required fields are empty: {missing}", document_id=document_id)

        async with self.locks.hold(document_id):
            source_bytes = await self.source.get_pdf_bytes(document_id, pdf_url)
            geometries = await asyncio.to_thread(resolve_all, source_bytes, self.render_width)
            by_page: Dict[int, PageGeometry] = {g.page_number: g for g in geometries}

            values: List[FieldValue] = []
            for f in fields:
                # A field on a page the document lacks is converted against
                # page 1; the engine then applies its fallback rule.
                geom = by_page.get(f.page_number, geometries[0])
                rect = percent_to_pdf(f.percent_rect(), geom)
                values.append(build_field_value(f.field_type, rect, f.page_number, values_by_field_id.get(f.id)))

            return await self._sign_locked(document_id, source_bytes, values, pdf_url)

    async def _sign_locked(
        self,
        document_id: str,
        source_bytes: bytes,
        values: List[FieldValue],
        pdf_url: Optional[str],
    ) -> SigningOutcome:
        filled = sum(1 for v in values if not is_empty(v))
        logger.info(f"Signing {document_id}: {len(values)} fields, {filled} with values")

        result = await asyncio.to_thread(
            rasterize,
            source_bytes,
            values,
            document_id=document_id,
            strict_pages=self.strict_pages,
        )

        location = await asyncio.to_thread(self.files.write_signed, document_id, result.pdf_bytes)

        try:
            record = self.audit.record_signing(
                document_id,
                original_bytes=source_bytes,
                signed_bytes=result.pdf_bytes,
                values=values,
                signed_output_location=location,
                original_source_location=pdf_url,
            )
        except PersistenceError as e:
            # The signed file is on disk; the client is told which step failed
            e.stage = "audit"
            e.document_id = document_id
            raise

        logger.info(f"PDF signed successfully: {location}")
        return SigningOutcome(
            document_id=document_id,
            pdf_bytes=result.pdf_bytes,
            original_hash=record.original_hash,
            signed_hash=calculate_hash(result.pdf_bytes),
            processed=result.processed,
            location=location,
            audit=record,
            skipped=result.skipped,
            page_fallbacks=result.page_fallbacks,
        )
