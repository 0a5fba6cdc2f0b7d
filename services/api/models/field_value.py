# services/api/models/field_value.py
"""
Values submitted at signing time.

One frozen dataclass per field type; the rasterization engine dispatches on
the class with ``match``. Coordinates are PDF points, bottom-left origin.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union

from core.errors import ValidationError
from .field import FieldType
from .page import PdfRect


@dataclass(frozen=True)
class _PlacedValue:
    x: float
    y: float
    width: float
    height: float
    page: int  # 1-based

    @property
    def rect(self) -> PdfRect:
        return PdfRect(self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class SignatureValue(_PlacedValue):
    data_url: str


@dataclass(frozen=True)
class ImageValue(_PlacedValue):
    data_url: str


@dataclass(frozen=True)
class TextValue(_PlacedValue):
    text: str


@dataclass(frozen=True)
class DateValue(_PlacedValue):
    text: str


@dataclass(frozen=True)
class RadioValue(_PlacedValue):
    # Raw submitted value. Only the boolean True draws a mark.
    selected: Any


FieldValue = Union[SignatureValue, ImageValue, TextValue, DateValue, RadioValue]


def field_type_of(value: FieldValue) -> FieldType:
    match value:
        case SignatureValue():
            return FieldType.SIGNATURE
        case ImageValue():
            return FieldType.IMAGE
        case TextValue():
            return FieldType.TEXT
        case DateValue():
            return FieldType.DATE
        case RadioValue():
            return FieldType.RADIO
    raise TypeError(f"Not a field value: {value!r}")


def is_empty(value: FieldValue) -> bool:
    """Empty string, False or None never render and never count."""
    match value:
        case SignatureValue(data_url=payload) | ImageValue(data_url=payload):
            return not payload
        case TextValue(text=payload) | DateValue(text=payload):
            return not payload
        case RadioValue(selected=payload):
            return not payload
    return True


def _payload_text(raw: Any) -> str:
    if raw is None or raw is False:
        return ""
    return raw if isinstance(raw, str) else str(raw)


def build_field_value(
    field_type: FieldType,
    rect: PdfRect,
    page: int,
    raw: Any,
) -> FieldValue:
    placed = dict(x=rect.x, y=rect.y, width=rect.width, height=rect.height, page=page)
    match field_type:
        case FieldType.SIGNATURE:
            return SignatureValue(data_url=_payload_text(raw), **placed)
        case FieldType.IMAGE:
            return ImageValue(data_url=_payload_text(raw), **placed)
        case FieldType.TEXT:
            return TextValue(text=_payload_text(raw), **placed)
        case FieldType.DATE:
            return DateValue(text=_payload_text(raw), **placed)
        case FieldType.RADIO:
            return RadioValue(selected=raw, **placed)
    raise ValidationError(f"Unsupported field type: {field_type!r}")


def field_value_from_dict(data: Mapping[str, Any]) -> FieldValue:
    """
    Parse one entry of a /sign-pdf request:
    {type, x, y, width, height, page, value}.
    """
    raw_type = data.get("type", data.get("field_type"))
    if raw_type is None:
        raise ValidationError("Field entry is missing 'type'")
    try:
        rect = PdfRect(
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
        )
        page = int(data.get("page") or 1)
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid field geometry: {e}") from e

    return build_field_value(FieldType.parse(raw_type), rect, page, data.get("value"))


def audit_projection(value: FieldValue) -> Dict[str, Any]:
    """The part of a value that is kept in the audit record (no payload)."""
    return {
        "type": field_type_of(value).value,
        "x": value.x,
        "y": value.y,
        "width": value.width,
        "height": value.height,
        "page": value.page,
    }
