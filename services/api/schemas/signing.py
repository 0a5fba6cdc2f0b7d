"""
Pydantic schemas for signing requests.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .document import CamelModel


class SignFieldIn(BaseModel):
    """A field value placed in PDF points (bottom-left origin)."""
    type: str = Field(..., description="signature | text | image | date | radio")
    x: float
    y: float
    width: float
    height: float
    page: int = Field(1, description="1-based page number")
    value: Any = Field(None, description="Data URL, text, or boolean for radio")


class PdfDimensions(CamelModel):
    """Page size as the client measured it."""
    width_points: float
    height_points: float


class SignPdfRequest(CamelModel):
    pdf_id: Optional[str] = Field(None, description="Document ID")
    fields: Optional[List[SignFieldIn]] = None
    pdf_dimensions: Optional[PdfDimensions] = None
    pdf_url: Optional[str] = Field(None, description="Where to fetch the source on first use")


class SignStoredRequest(CamelModel):
    """Values keyed by stored field id; placement comes from the saved layout."""
    values: Dict[str, Any] = Field(default_factory=dict)
    pdf_url: Optional[str] = None


class SkippedFieldOut(CamelModel):
    index: int
    field_type: str
    reason: str


class SignPdfOut(CamelModel):
    success: bool = True
    pdf_url: str = Field(..., description="Download location of the signed PDF")
    original_hash: str
    signed_hash: str
    audit_id: str
    processed_fields: int
    skipped_fields: List[SkippedFieldOut] = Field(default_factory=list)
    page_fallbacks: List[int] = Field(
        default_factory=list,
        description="Indexes of fields drawn on page 1 because their page was missing",
    )
    message: str = "PDF signed successfully with audit trail"
