# services/api/routers/audit.py
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from core.audit import AuditRecorder
from core.errors import ValidationError
from core.validation import looks_like_sha256, normalize_hash
from dependencies import get_audit_recorder
from schemas import AuditOut, VerifyOut, VerifyRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["audit"])

Recorder = Annotated[AuditRecorder, Depends(get_audit_recorder)]


@router.get("/audit/{pdf_id}", response_model=AuditOut)
def get_audit(pdf_id: str, recorder: Recorder):
    summary = recorder.get_audit(pdf_id)
    return AuditOut(
        pdf_id=summary.document_id,
        original_hash=summary.original_hash,
        signed_hash=summary.signed_hash,
        signed_at=summary.signed_at,
        fields_count=summary.fields_count,
        integrity=summary.integrity,
        created_at=summary.created_at,
    )


@router.post("/verify", response_model=VerifyOut)
def verify(body: VerifyRequest, recorder: Recorder):
    """Compare a client-computed hash of a signed file with the stored one."""
    if not body.pdf_id:
        raise ValidationError("Missing pdfId or providedHash")
    supplied = normalize_hash(body.provided_hash)
    if not looks_like_sha256(supplied):
        logger.warning(f"Verify for {body.pdf_id} with a non SHA-256 value: {supplied[:20]!r}")

    result = recorder.verify(body.pdf_id, supplied)
    return VerifyOut(
        is_valid=result.is_valid,
        stored_hash=result.stored_hash,
        provided_hash=body.provided_hash,
        signed_at=result.signed_at,
        message=result.message,
    )
