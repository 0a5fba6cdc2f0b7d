from __future__ import annotations

from .page import (
    PageGeometry,
    PercentRect,
    ScreenRect,
    PdfRect,
    screen_to_pdf,
    pdf_to_screen,
    screen_to_percent,
    percent_to_screen,
    percent_to_pdf,
    pdf_to_percent,
)
from .field import FieldDefinition, FieldType
from .field_value import (
    FieldValue,
    SignatureValue,
    ImageValue,
    TextValue,
    DateValue,
    RadioValue,
    build_field_value,
    field_value_from_dict,
    audit_projection,
    is_empty,
)
from .audit import AuditRecord

__all__ = [
    "PageGeometry",
    "PercentRect",
    "ScreenRect",
    "PdfRect",
    "screen_to_pdf",
    "pdf_to_screen",
    "screen_to_percent",
    "percent_to_screen",
    "percent_to_pdf",
    "pdf_to_percent",
    "FieldDefinition",
    "FieldType",
    "FieldValue",
    "SignatureValue",
    "ImageValue",
    "TextValue",
    "DateValue",
    "RadioValue",
    "build_field_value",
    "field_value_from_dict",
    "audit_projection",
    "is_empty",
    "AuditRecord",
]
