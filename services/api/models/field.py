# services/api/models/field.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from core.errors import ValidationError
from .page import PercentRect


def _gen_field_id() -> str:
  return f"f-{uuid4().hex[:12]}"


def _now_iso() -> str:
  return datetime.now(timezone.utc).isoformat()


class FieldType(str, Enum):
  SIGNATURE = "signature"
  TEXT = "text"
  IMAGE = "image"
  DATE = "date"
  RADIO = "radio"

  @classmethod
  def parse(cls, raw: Any) -> "FieldType":
    try:
      return cls(str(raw).strip().lower())
    except ValueError:
      allowed = ", ".join(t.value for t in cls)
      raise ValidationError(f"Unknown field type {raw!r} (expected one of: {allowed})")


@dataclass
class FieldDefinition:
  """
  A field placed on a document page.

  Position is stored as percentages of the page size with the y axis
  measured from the page BOTTOM (same direction as PDF points). Values past
  100 are allowed: a field may hang over the page edge.
  """

  document_id: str
  field_type: FieldType
  page_number: int              # 1-based

  x_percent: float
  y_percent: float
  width_percent: float
  height_percent: float

  label: str = ""
  required: bool = True

  id: str = field(default_factory=_gen_field_id)
  created_at: str = field(default_factory=_now_iso)

  # --------------------
  # Validation
  # --------------------
  def validate(self) -> None:
    if not self.document_id:
      raise ValidationError("document_id is required")

    if self.page_number < 1:
      raise ValidationError(f"page_number must be >= 1, got {self.page_number}")

    if self.width_percent <= 0 or self.height_percent <= 0:
      raise ValidationError(
        f"width_percent and height_percent must be > 0 "
        f"(got {self.width_percent} x {self.height_percent})"
      )

  def percent_rect(self) -> PercentRect:
    return PercentRect(
      x_pct=self.x_percent,
      y_pct=self.y_percent,
      width_pct=self.width_percent,
      height_pct=self.height_percent,
    )

  # ------------ API layer ------------

  @classmethod
  def from_api(cls, data: Dict[str, Any], *, document_id: str, page_number: int) -> "FieldDefinition":
    """
    Build from one entry of a "replace page" payload. The page comes from the
    request, not from the entry, so a page can never smuggle fields onto
    another page.
    """
    required = data.get("required")
    f = cls(
      document_id=document_id,
      field_type=FieldType.parse(data.get("field_type")),
      page_number=int(page_number),
      x_percent=float(data["x_percent"]),
      y_percent=float(data["y_percent"]),
      width_percent=float(data["width_percent"]),
      height_percent=float(data["height_percent"]),
      label=str(data.get("label") or ""),
      required=True if required is None else bool(required),
    )
    f.validate()
    return f

  def to_api(self) -> Dict[str, Any]:
    return {
      "id": self.id,
      "document_id": self.document_id,
      "field_type": self.field_type.value,
      "page_number": self.page_number,
      "x_percent": self.x_percent,
      "y_percent": self.y_percent,
      "width_percent": self.width_percent,
      "height_percent": self.height_percent,
      "label": self.label,
      "required": self.required,
      "created_at": self.created_at,
    }

  # ------------ storage layer ------------

  @classmethod
  def from_storage(cls, row: Dict[str, Any]) -> "FieldDefinition":
    created: Optional[Any] = row.get("created_at")
    if isinstance(created, datetime):
      created = created.isoformat()
    return cls(
      id=row["id"],
      document_id=row["document_id"],
      field_type=FieldType.parse(row["field_type"]),
      page_number=int(row["page_number"]),
      x_percent=float(row["x_percent"]),
      y_percent=float(row["y_percent"]),
      width_percent=float(row["width_percent"]),
      height_percent=float(row["height_percent"]),
      label=row.get("label") or "",
      required=bool(row.get("required", True)),
      created_at=created or _now_iso(),
    )

  def to_storage(self) -> Dict[str, Any]:
    return self.to_api()
