# services/api/routers/documents.py
from __future__ import annotations

import logging
import secrets
import time
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.concurrency import run_in_threadpool

from adapters.base import StorageAdapter
from core.audit import calculate_hash
from core.errors import NotFoundError, SourceLoadError, ValidationError
from core.file_store import FileStore
from core.geometry import count_pages, resolve_all, resolve_geometry
from core.pdf_source import PdfSource
from core.validation import validate_page_number, validate_pdf_upload, validate_render_width
from dependencies import get_file_store, get_pdf_source, get_services, get_storage_adapter
from models import AuditRecord, PageGeometry
from schemas import (
    DocumentDeleteOut,
    DocumentDetail,
    DocumentDetailOut,
    DocumentListOut,
    DocumentSummary,
    PageGeometryOut,
    UploadOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["documents"])

# ---- DI aliases (no default value allowed) ----
Storage = Annotated[StorageAdapter, Depends(get_storage_adapter)]
Files = Annotated[FileStore, Depends(get_file_store)]
Source = Annotated[PdfSource, Depends(get_pdf_source)]


def new_document_id() -> str:
    return f"doc-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


def _summary(record: AuditRecord) -> DocumentSummary:
    return DocumentSummary(
        id=record.document_id,
        hash=record.original_hash,
        url=record.original_source_location,
        file_name=record.file_name or "Unknown",
        file_size=record.file_size,
        page_count=record.page_count,
        created_at=record.created_at,
        signed_at=record.signed_at,
        status=record.status,
    )


def _geometry_out(geom: PageGeometry) -> PageGeometryOut:
    return PageGeometryOut(
        page_number=geom.page_number,
        width_points=geom.width_points,
        height_points=geom.height_points,
        width_pixels=geom.width_pixels,
        height_pixels=geom.height_pixels,
        scale=geom.scale,
    )


def _require(storage: StorageAdapter, document_id: str) -> AuditRecord:
    record = storage.get_audit(document_id)
    if record is None:
        raise NotFoundError("Document not found", document_id=document_id)
    return record


# ---------- upload ----------

@router.post("/upload-pdf", response_model=UploadOut)
async def upload_pdf(storage: Storage, files: Files, pdf: UploadFile = File(...)):
    """
    Store an uploaded PDF and create its document record.
    The original hash is fixed here and never changes afterwards.
    """
    settings = get_services().settings
    data = await pdf.read()
    validate_pdf_upload(pdf.filename, pdf.content_type, len(data), settings.max_upload_bytes)

    try:
        page_count = await run_in_threadpool(count_pages, data)
    except SourceLoadError as e:
        raise ValidationError(f"Invalid PDF file: {e.message}")
    if page_count < 1:
        raise ValidationError("PDF has no pages")

    location = files.save_upload(data, pdf.filename or "document.pdf")
    document_id = new_document_id()
    pdf_hash = calculate_hash(data)

    record = AuditRecord(
        document_id=document_id,
        original_hash=pdf_hash,
        original_source_location=location,
        file_name=pdf.filename or "document.pdf",
        file_size=len(data),
        page_count=page_count,
    )
    try:
        storage.create_document(record)
    except Exception:
        files.delete_upload(location)
        raise

    logger.info(
        f"PDF uploaded: {document_id} ({record.file_name}, {page_count} pages, "
        f"{len(data) / 1024:.2f} KB, hash {pdf_hash[:16]}...)"
    )
    return UploadOut(
        document_id=document_id,
        pdf_url=settings.public_url(location),
        file_name=record.file_name,
        file_size=record.file_size,
        page_count=page_count,
        hash=pdf_hash,
    )


# ---------- documents ----------

@router.get("/documents", response_model=DocumentListOut)
def list_documents(storage: Storage, limit: int = Query(100, ge=1, le=500)):
    """Newest first. Records without a known source (never uploaded) are hidden."""
    records = [r for r in storage.list_documents(limit=limit) if r.original_source_location]
    docs = [_summary(r) for r in records]
    return DocumentListOut(count=len(docs), documents=docs)


@router.get("/documents/{document_id}/details", response_model=DocumentDetailOut)
def document_details(document_id: str, storage: Storage):
    record = _require(storage, document_id)
    detail = DocumentDetail(
        **_summary(record).model_dump(),
        field_count=storage.count_fields(document_id),
        signed_hash=record.signed_hash,
        download_url=record.signed_output_location,
    )
    return DocumentDetailOut(document=detail)


@router.delete("/documents/{document_id}", response_model=DocumentDeleteOut)
def delete_document(document_id: str, storage: Storage, files: Files, source: Source):
    """Delete the record, its fields, its stored files and any cached source."""
    record = _require(storage, document_id)
    logger.info(f"Deleting document: {document_id} ({record.file_name or 'Unknown'})")

    deleted_fields = storage.delete_document(document_id)
    files.delete_upload(record.original_source_location)
    files.delete_signed(record.signed_output_location)
    source.invalidate(document_id)

    logger.info(f"Document deleted: {document_id}, {deleted_fields} fields removed")
    return DocumentDeleteOut(deleted_fields=deleted_fields)


# ---------- geometry ----------

@router.get("/documents/{document_id}/pages", response_model=List[PageGeometryOut])
async def document_pages(
    document_id: str,
    storage: Storage,
    source: Source,
    render_width: Optional[float] = Query(None, description="Rendered page width in pixels"),
):
    """Geometry of every page; pages may differ in size."""
    _require(storage, document_id)
    width = validate_render_width(render_width or get_services().settings.default_render_width)
    data = await source.get_pdf_bytes(document_id)
    geometries = await run_in_threadpool(resolve_all, data, width)
    return [_geometry_out(g) for g in geometries]


@router.get("/documents/{document_id}/pages/{page_number}/geometry", response_model=PageGeometryOut)
async def page_geometry(
    document_id: str,
    page_number: int,
    storage: Storage,
    source: Source,
    render_width: Optional[float] = Query(None, description="Rendered page width in pixels"),
):
    _require(storage, document_id)
    page = validate_page_number(page_number)
    width = validate_render_width(render_width or get_services().settings.default_render_width)
    data = await source.get_pdf_bytes(document_id)
    geom = await run_in_threadpool(resolve_geometry, data, page, width)
    return _geometry_out(geom)
