# services/api/core/rasterize.py
"""
Document rasterization engine.

Draws submitted field values onto the pages of a source PDF and returns the
new PDF bytes. Field rectangles arrive in PDF points with a bottom-left
origin; PyMuPDF works top-left, so every rect is flipped against the page's
visible height (and derotated for pages with /Rotate set).

Fields are drawn strictly in input order so overlapping fields stack the
same way every time.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import fitz  # PyMuPDF
from PIL import Image, UnidentifiedImageError

from core.errors import DecodeError, PersistenceError, SourceLoadError, ValidationError
from models import (
    DateValue,
    FieldValue,
    ImageValue,
    PdfRect,
    RadioValue,
    SignatureValue,
    TextValue,
    is_empty,
)
from models.field_value import field_type_of

logger = logging.getLogger(__name__)

# Text / date rendering
DEFAULT_FONT_SIZE = 12.0
FONT_HEIGHT_RATIO = 0.6
TEXT_FONT = "helv"
TEXT_COLOR = (0, 0, 0)

# Radio mark
RADIO_INSET = 2.0
RADIO_INNER_RATIO = 0.6
RADIO_BORDER_WIDTH = 2.0

# PNG is tried before JPEG
IMAGE_FORMATS = ("PNG", "JPEG")


@dataclass(frozen=True)
class FittedImage:
    width: float
    height: float
    offset_x: float
    offset_y: float


@dataclass(frozen=True)
class SkippedField:
    index: int          # position in the submitted list
    field_type: str
    reason: str


@dataclass
class RasterResult:
    pdf_bytes: bytes
    processed: int = 0
    skipped: List[SkippedField] = field(default_factory=list)
    # indexes of fields whose page did not exist and went to page 1
    page_fallbacks: List[int] = field(default_factory=list)


def fit_image_in_bounds(
    image_width: float,
    image_height: float,
    box_width: float,
    box_height: float,
) -> FittedImage:
    """
    Scale an image to fit a box, keeping its aspect ratio, centred on the
    axis that has slack.
    """
    if image_width <= 0 or image_height <= 0 or box_width <= 0 or box_height <= 0:
        return FittedImage(0.0, 0.0, 0.0, 0.0)

    image_aspect = image_width / image_height
    box_aspect = box_width / box_height

    if image_aspect > box_aspect:
        # Wider than the box: full width, letterbox vertically
        width = box_width
        height = box_width / image_aspect
        return FittedImage(width, height, 0.0, (box_height - height) / 2)

    height = box_height
    width = box_height * image_aspect
    return FittedImage(width, height, (box_width - width) / 2, 0.0)


def decode_data_url(payload: str) -> bytes:
    """
    'data:image/png;base64,AAAA' -> raw bytes. A bare base64 string is
    accepted too.
    """
    b64 = payload.split(",", 1)[1] if "," in payload else payload
    try:
        return base64.b64decode(b64.strip(), validate=False)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 image payload: {e}") from e


def decode_image(data: bytes) -> Tuple[int, int, str]:
    """
    Identify an image as PNG, else JPEG. Returns (width_px, height_px, format).
    """
    if not data:
        raise DecodeError("Image payload is empty")
    for fmt in IMAGE_FORMATS:
        try:
            with Image.open(io.BytesIO(data), formats=[fmt]) as img:
                img.load()
                width, height = img.size
            return width, height, fmt
        except Image.DecompressionBombError as e:
            raise DecodeError(f"Image too large to embed: {e}") from e
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
            continue
    raise DecodeError("Image is neither PNG nor JPEG")


# ---------- page coordinate helpers ------------------------------------------

def _page_rect(page: fitz.Page, rect: PdfRect) -> fitz.Rect:
    """Bottom-left PDF rect -> PyMuPDF rect on the (unrotated) page."""
    top = page.rect.height - rect.y - rect.height
    r = fitz.Rect(rect.x, top, rect.x + rect.width, top + rect.height)
    if page.rotation:
        r = r * page.derotation_matrix
    return r


def _page_point(page: fitz.Page, x: float, y: float) -> fitz.Point:
    p = fitz.Point(x, page.rect.height - y)
    if page.rotation:
        p = p * page.derotation_matrix
    return p


# ---------- per-type drawing --------------------------------------------------

def _draw_image(page: fitz.Page, value: SignatureValue | ImageValue) -> None:
    data = decode_data_url(value.data_url)
    img_w, img_h, fmt = decode_image(data)

    fitted = fit_image_in_bounds(img_w, img_h, value.width, value.height)
    if fitted.width <= 0 or fitted.height <= 0:
        raise DecodeError(f"Field box {value.width}x{value.height} cannot hold an image")

    target = PdfRect(
        x=value.x + fitted.offset_x,
        y=value.y + fitted.offset_y,
        width=fitted.width,
        height=fitted.height,
    )
    try:
        page.insert_image(
            _page_rect(page, target),
            stream=data,
            keep_proportion=False,
            overlay=True,
            rotate=page.rotation,
        )
    except (RuntimeError, ValueError) as e:
        raise DecodeError(f"Cannot embed {fmt} image: {e}") from e


def _text_font_size(text: str, width: float, height: float) -> float:
    size = min(DEFAULT_FONT_SIZE, height * FONT_HEIGHT_RATIO)
    if size <= 0:
        return 0.0
    if width > 0:
        text_width = fitz.get_text_length(text, fontname=TEXT_FONT, fontsize=size)
        if text_width > width:
            size = size * width / text_width
    return size


def _draw_text(page: fitz.Page, value: TextValue | DateValue, text: str) -> bool:
    size = _text_font_size(text, value.width, value.height)
    if size <= 0:
        return False
    # Vertically centre: baseline sits a third of the font size below the middle
    baseline = value.y + value.height / 2 - size / 3
    page.insert_text(
        _page_point(page, value.x, baseline),
        text,
        fontsize=size,
        fontname=TEXT_FONT,
        color=TEXT_COLOR,
        rotate=page.rotation,
    )
    return True


def _draw_radio(page: fitz.Page, value: RadioValue) -> bool:
    outer = min(value.width, value.height) / 2 - RADIO_INSET
    if outer <= 0:
        return False
    center = _page_point(page, value.x + value.width / 2, value.y + value.height / 2)
    page.draw_circle(center, outer, color=(0, 0, 0), width=RADIO_BORDER_WIDTH)
    page.draw_circle(center, outer * RADIO_INNER_RATIO, color=None, fill=(0, 0, 0))
    return True


# ---------- engine ------------------------------------------------------------

def _open(pdf_bytes: bytes, document_id: Optional[str]) -> fitz.Document:
    if not pdf_bytes:
        raise SourceLoadError("Source PDF is empty", document_id=document_id, stage="load")
    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise SourceLoadError(f"Cannot open source PDF: {e}", document_id=document_id, stage="load") from e
    if doc.page_count == 0:
        doc.close()
        raise SourceLoadError("Source PDF has no pages", document_id=document_id, stage="load")
    return doc


def rasterize(
    pdf_bytes: bytes,
    values: Sequence[FieldValue],
    *,
    document_id: Optional[str] = None,
    strict_pages: bool = False,
) -> RasterResult:
    """
    Render `values` onto a copy of `pdf_bytes`.

    Empty values are skipped silently. An image that cannot be decoded is
    skipped and reported in `RasterResult.skipped`; the rest of the document
    is still signed. Load and save failures abort the whole operation.
    """
    doc = _open(pdf_bytes, document_id)
    result = RasterResult(pdf_bytes=b"")
    try:
        for index, value in enumerate(values):
            type_name = field_type_of(value).value
            if is_empty(value):
                logger.info(f"Skipping empty field #{index}: {type_name}")
                continue

            page_index = value.page - 1
            if not 0 <= page_index < doc.page_count:
                if strict_pages:
                    raise ValidationError(
                        f"Field #{index} targets page {value.page} but document has {doc.page_count} pages",
                        document_id=document_id,
                        stage="rasterize",
                    )
                logger.warning(f"Field #{index} targets missing page {value.page}, drawing on page 1")
                result.page_fallbacks.append(index)
                page_index = 0
            page = doc[page_index]

            drawn = False
            match value:
                case SignatureValue() | ImageValue():
                    try:
                        _draw_image(page, value)
                        drawn = True
                    except DecodeError as e:
                        logger.error(f"Failed to embed {type_name} field #{index}: {e.message}")
                        result.skipped.append(SkippedField(index, type_name, e.message))
                        continue
                case TextValue(text=text) | DateValue(text=text):
                    drawn = _draw_text(page, value, text)
                case RadioValue(selected=selected):
                    # Exactly True; "true" and 1 are not a selection
                    if selected is not True:
                        continue
                    drawn = _draw_radio(page, value)
                case _:
                    raise TypeError(f"Unhandled field value {value!r}")

            if drawn:
                result.processed += 1
                logger.info(f"Added {type_name} at ({value.x:.1f}, {value.y:.1f}) on page {page_index + 1}")
            else:
                result.skipped.append(SkippedField(index, type_name, "field too small to draw"))

        try:
            result.pdf_bytes = doc.tobytes(deflate=True)
        except (RuntimeError, ValueError) as e:
            raise PersistenceError(
                f"Failed to serialize signed PDF: {e}", document_id=document_id, stage="save"
            ) from e
    finally:
        doc.close()

    logger.info(f"Processed {result.processed} fields ({len(result.skipped)} skipped)")
    return result
