# services/api/routers/signing.py
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from core.errors import ValidationError
from core.file_store import FileStore
from core.signing import SigningOutcome, SigningService
from core.validation import validate_page_dimensions
from dependencies import get_file_store, get_signing_service
from models import field_value_from_dict
from schemas import SignPdfOut, SignPdfRequest, SignStoredRequest, SkippedFieldOut

logger = logging.getLogger(__name__)

router = APIRouter(tags=["signing"])

Signer = Annotated[SigningService, Depends(get_signing_service)]
Files = Annotated[FileStore, Depends(get_file_store)]


def _sign_response(outcome: SigningOutcome) -> SignPdfOut:
    return SignPdfOut(
        pdf_url=outcome.location,
        original_hash=outcome.original_hash,
        signed_hash=outcome.signed_hash,
        audit_id=outcome.document_id,
        processed_fields=outcome.processed,
        skipped_fields=[
            SkippedFieldOut(index=s.index, field_type=s.field_type, reason=s.reason)
            for s in outcome.skipped
        ],
        page_fallbacks=outcome.page_fallbacks,
    )


@router.post("/sign-pdf", response_model=SignPdfOut)
async def sign_pdf(body: SignPdfRequest, signer: Signer):
    """
    Burn field values into the document.

    Field rectangles are PDF points with a bottom-left origin, already
    converted by the client from the editor's percentages.
    """
    if not body.pdf_id:
        raise ValidationError("Missing pdfId")
    if body.fields is None:
        raise ValidationError("Missing or invalid fields array", document_id=body.pdf_id)
    if body.pdf_dimensions is not None:
        validate_page_dimensions(body.pdf_dimensions.width_points, body.pdf_dimensions.height_points)

    values = [field_value_from_dict(f.model_dump()) for f in body.fields]
    logger.info(f"Processing PDF signature for: {body.pdf_id} ({len(values)} fields)")

    outcome = await signer.sign(body.pdf_id, values, pdf_url=body.pdf_url)
    return _sign_response(outcome)


@router.post("/documents/{document_id}/sign", response_model=SignPdfOut)
async def sign_document(document_id: str, body: SignStoredRequest, signer: Signer):
    """Sign using the saved field layout; the body only carries values by field id."""
    outcome = await signer.sign_stored_fields(document_id, body.values, pdf_url=body.pdf_url)
    return _sign_response(outcome)


@router.get("/download/{filename}")
def download_signed(filename: str, files: Files):
    data = files.read_signed(filename)
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
