"""
Validation utilities for the signing service.
Ensures request data is usable before any PDF work starts.
"""
import math
import re
from typing import Any, Dict, List, Optional

from core.errors import ValidationError

_SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")


def _finite(name: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be finite, got {value!r}")
    return number


def validate_percent_rect(x: float, y: float, w: float, h: float) -> None:
    """
    Validate a field rectangle in page percentages.

    Rules:
    - all four values must be finite numbers
    - width and height must be positive
    - position may be anywhere; a field may overhang the page edge

    Raises:
        ValidationError: if validation fails
    """
    _finite("x", x)
    _finite("y", y)
    if _finite("width", w) <= 0:
        raise ValidationError(f"width must be positive, got {w}")
    if _finite("height", h) <= 0:
        raise ValidationError(f"height must be positive, got {h}")


def validate_page_number(page_number: Any) -> int:
    """Page numbers are 1-based integers."""
    if isinstance(page_number, float) and not page_number.is_integer():
        raise ValidationError(f"pageNumber must be an integer, got {page_number!r}")
    try:
        page = int(page_number)
    except (TypeError, ValueError):
        raise ValidationError(f"pageNumber must be an integer, got {page_number!r}")
    if page < 1:
        raise ValidationError(f"pageNumber must be >= 1, got {page_number!r}")
    return page


def ensure_unique_field_ids(fields: List[Dict[str, Any]]) -> None:
    """
    Ensure no field id appears twice in one submission.

    Entries without an id are ignored; the server assigns those.
    """
    seen = set()
    duplicates = []

    for f in fields:
        fid = f.get("id")
        if not fid:
            continue
        if fid in seen:
            duplicates.append(fid)
        seen.add(fid)

    if duplicates:
        raise ValidationError(f"Duplicate field ids found: {sorted(set(duplicates))}")


def validate_page_dimensions(width_points: Any, height_points: Any) -> None:
    """Client-reported page size in points must be positive."""
    if _finite("widthPoints", width_points) <= 0:
        raise ValidationError(f"widthPoints must be positive, got {width_points}")
    if _finite("heightPoints", height_points) <= 0:
        raise ValidationError(f"heightPoints must be positive, got {height_points}")


def validate_render_width(render_width: Any) -> float:
    width = _finite("render_width", render_width)
    if width <= 0:
        raise ValidationError(f"render_width must be positive, got {render_width}")
    return width


def validate_pdf_upload(filename: Optional[str], content_type: Optional[str], size: int, max_bytes: int) -> None:
    """Only PDF files under the size limit are accepted."""
    is_pdf = content_type == "application/pdf" or (filename or "").lower().endswith(".pdf")
    if not is_pdf:
        raise ValidationError("Only PDF files are allowed")
    if size == 0:
        raise ValidationError("No file uploaded")
    if size > max_bytes:
        raise ValidationError(f"File too large ({size} bytes, limit {max_bytes})")


def normalize_hash(value: Optional[str]) -> str:
    """
    Lower-case and strip a client-supplied hex digest.

    A digest that is not 64 hex characters is returned as-is; it simply
    never matches a stored hash.

    Raises:
        ValidationError: if it is missing
    """
    if not value or not value.strip():
        raise ValidationError("Missing pdfId or providedHash")
    return value.strip().lower()


def looks_like_sha256(value: str) -> bool:
    return bool(_SHA256_HEX.match(value))
