"""
Pydantic schemas for the audit trail.
"""
from typing import Optional

from pydantic import Field

from .document import CamelModel


class AuditOut(CamelModel):
    pdf_id: str
    original_hash: str
    signed_hash: Optional[str] = None
    signed_at: Optional[str] = None
    fields_count: int = 0
    integrity: str = Field(..., description="'Modified' or 'Intact'")
    created_at: Optional[str] = None


class VerifyRequest(CamelModel):
    pdf_id: Optional[str] = None
    provided_hash: Optional[str] = None


class VerifyOut(CamelModel):
    is_valid: bool
    stored_hash: Optional[str] = None
    provided_hash: Optional[str] = None
    signed_at: Optional[str] = None
    message: str
