"""
Pydantic schemas for editor fields.

Field entries keep snake_case keys on the wire; only the envelope uses
camelCase (pageNumber).
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from models import FieldType
from .document import CamelModel


class FieldIn(BaseModel):
    """One field placed in the editor. Percentages, y from the page bottom."""
    field_type: str = Field(..., description="signature | text | image | date | radio")
    x_percent: float = Field(..., description="Left edge, % of page width")
    y_percent: float = Field(..., description="Bottom edge, % of page height")
    width_percent: float = Field(..., gt=0, description="Width, % of page width")
    height_percent: float = Field(..., gt=0, description="Height, % of page height")
    label: Optional[str] = Field("", max_length=200)
    required: Optional[bool] = Field(None, description="Defaults to true")

    @field_validator("field_type")
    @classmethod
    def validate_field_type(cls, v: str) -> str:
        allowed = {t.value for t in FieldType}
        v = (v or "").strip().lower()
        if v not in allowed:
            raise ValueError(f"field_type must be one of {sorted(allowed)}, got {v!r}")
        return v


class FieldOut(BaseModel):
    id: str
    document_id: str
    field_type: str
    page_number: int
    x_percent: float
    y_percent: float
    width_percent: float
    height_percent: float
    label: str = ""
    required: bool = True
    created_at: Optional[str] = None


class FieldsReplace(CamelModel):
    """Replace every field on one page."""
    page_number: int = Field(..., ge=1, description="1-based page the fields belong to")
    fields: List[FieldIn] = Field(..., description="New fields for the page; [] clears it")


class FieldsSaveOut(CamelModel):
    success: bool = True
    message: str = "Fields saved successfully"
    count: int = 0


class FieldDeleteOut(CamelModel):
    success: bool = True
    message: str = "Field deleted successfully"
