# services/api/core/geometry.py
"""
Page geometry resolution with python-pdfium2.

A PageGeometry is derived from the page's intrinsic size (points, rotation
applied, as a viewer shows it) and the width the page is rendered at.
Pages of one document may differ in size, so each page is resolved on its
own and nothing is shared between pages or render widths.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List

import pypdfium2 as pdfium

from core.errors import SourceLoadError, ValidationError
from models import PageGeometry

logger = logging.getLogger(__name__)


@contextmanager
def open_pdf(pdf_bytes: bytes, *, document_id: str | None = None) -> Iterator[pdfium.PdfDocument]:
    """Open PDF bytes with pdfium, mapping parse failures to SourceLoadError."""
    if not pdf_bytes:
        raise SourceLoadError("Source PDF is empty", document_id=document_id, stage="load")
    try:
        doc = pdfium.PdfDocument(pdf_bytes)
    except pdfium.PdfiumError as e:
        raise SourceLoadError(f"Cannot parse PDF: {e}", document_id=document_id, stage="load") from e
    try:
        yield doc
    finally:
        doc.close()


def page_geometry(page: pdfium.PdfPage, page_number: int, render_width: float) -> PageGeometry:
    """
    Geometry of one loaded page rendered `render_width` pixels wide.
    """
    width_pt, height_pt = page.get_size()
    return PageGeometry.from_points(page_number, float(width_pt), float(height_pt), float(render_width))


def count_pages(pdf_bytes: bytes) -> int:
    with open_pdf(pdf_bytes) as doc:
        return len(doc)


def resolve_geometry(pdf_bytes: bytes, page_number: int, render_width: float) -> PageGeometry:
    """Resolve the geometry of a single 1-based page."""
    with open_pdf(pdf_bytes) as doc:
        total = len(doc)
        if not 1 <= page_number <= total:
            raise ValidationError(f"Page {page_number} out of range (document has {total} pages)")
        page = doc[page_number - 1]
        try:
            return page_geometry(page, page_number, render_width)
        finally:
            page.close()


def resolve_all(pdf_bytes: bytes, render_width: float) -> List[PageGeometry]:
    """Resolve every page of a document, in page order."""
    result: List[PageGeometry] = []
    with open_pdf(pdf_bytes) as doc:
        for i in range(len(doc)):
            page = doc[i]
            try:
                result.append(page_geometry(page, i + 1, render_width))
            finally:
                page.close()
    logger.debug(f"Resolved geometry for {len(result)} pages at {render_width}px")
    return result
