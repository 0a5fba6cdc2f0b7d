"""
Pydantic schemas for API request/response validation.
"""
from .document import (
    CamelModel,
    UploadOut,
    DocumentSummary,
    DocumentDetail,
    DocumentListOut,
    DocumentDetailOut,
    DocumentDeleteOut,
    PageGeometryOut,
)
from .field import FieldIn, FieldOut, FieldsReplace, FieldsSaveOut, FieldDeleteOut
from .signing import (
    SignFieldIn,
    PdfDimensions,
    SignPdfRequest,
    SignStoredRequest,
    SkippedFieldOut,
    SignPdfOut,
)
from .audit import AuditOut, VerifyRequest, VerifyOut

__all__ = [
    "CamelModel",
    "UploadOut",
    "DocumentSummary",
    "DocumentDetail",
    "DocumentListOut",
    "DocumentDetailOut",
    "DocumentDeleteOut",
    "PageGeometryOut",
    "FieldIn",
    "FieldOut",
    "FieldsReplace",
    "FieldsSaveOut",
    "FieldDeleteOut",
    "SignFieldIn",
    "PdfDimensions",
    "SignPdfRequest",
    "SignStoredRequest",
    "SkippedFieldOut",
    "SignPdfOut",
    "AuditOut",
    "VerifyRequest",
    "VerifyOut",
]
