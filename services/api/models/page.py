# services/api/models/page.py

from __future__ import annotations

from dataclasses import dataclass

from core.errors import ValidationError


@dataclass(frozen=True)
class PageGeometry:
    """
    Geometry of one page as currently rendered.

    Never stored: recompute it for every (page, render width) pair.
    """
    page_number: int         # 1-based
    width_points: float      # intrinsic PDF size (1 pt = 1/72 inch)
    height_points: float
    width_pixels: float      # rendered size on screen
    height_pixels: float
    scale: float             # pixels per point

    @classmethod
    def from_points(
        cls,
        page_number: int,
        width_points: float,
        height_points: float,
        render_width: float,
    ) -> "PageGeometry":
        """Uniformly scale a page of the given point size to render_width pixels."""
        if width_points <= 0 or height_points <= 0:
            raise ValidationError(
                f"Page {page_number}: size must be positive, got {width_points}x{height_points}"
            )
        if render_width <= 0:
            raise ValidationError(f"render_width must be positive, got {render_width}")
        scale = render_width / width_points
        return cls(
            page_number=page_number,
            width_points=width_points,
            height_points=height_points,
            width_pixels=render_width,
            height_pixels=height_points * scale,
            scale=scale,
        )

    def check(self) -> None:
        for name in ("width_points", "height_points", "width_pixels", "height_pixels"):
            value = getattr(self, name)
            if value is None or value <= 0:
                raise ValidationError(f"PageGeometry.{name} must be > 0, got {value}")


@dataclass(frozen=True)
class PercentRect:
    """0-100 of the page size, y measured from the page bottom."""
    x_pct: float
    y_pct: float
    width_pct: float
    height_pct: float


@dataclass(frozen=True)
class ScreenRect:
    """Pixels, origin top-left."""
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class PdfRect:
    """PDF points, origin bottom-left."""
    x: float
    y: float
    width: float
    height: float


def screen_to_pdf(rect: ScreenRect, geom: PageGeometry) -> PdfRect:
    """
    Screen pixels (top-left origin) -> PDF points (bottom-left origin).
    """
    geom.check()
    sx = geom.width_points / geom.width_pixels
    sy = geom.height_points / geom.height_pixels

    # Flip: distance of the rect's bottom edge from the page bottom
    bottom_px = geom.height_pixels - rect.y - rect.height

    return PdfRect(
        x=rect.x * sx,
        y=bottom_px * sy,
        width=rect.width * sx,
        height=rect.height * sy,
    )


def pdf_to_screen(rect: PdfRect, geom: PageGeometry) -> ScreenRect:
    """
    PDF points (bottom-left origin) -> screen pixels (top-left origin).
    """
    geom.check()
    sx = geom.width_pixels / geom.width_points
    sy = geom.height_pixels / geom.height_points

    height_px = rect.height * sy
    bottom_px = rect.y * sy

    return ScreenRect(
        x=rect.x * sx,
        y=geom.height_pixels - bottom_px - height_px,
        width=rect.width * sx,
        height=height_px,
    )


def screen_to_percent(rect: ScreenRect, geom: PageGeometry) -> PercentRect:
    """
    Screen pixels -> stored percentages (y from bottom).
    """
    geom.check()
    top_pct = rect.y / geom.height_pixels * 100
    height_pct = rect.height / geom.height_pixels * 100

    return PercentRect(
        x_pct=rect.x / geom.width_pixels * 100,
        y_pct=100 - top_pct - height_pct,
        width_pct=rect.width / geom.width_pixels * 100,
        height_pct=height_pct,
    )


def percent_to_screen(rect: PercentRect, geom: PageGeometry) -> ScreenRect:
    geom.check()
    height = rect.height_pct / 100 * geom.height_pixels
    y_from_bottom = rect.y_pct / 100 * geom.height_pixels

    return ScreenRect(
        x=rect.x_pct / 100 * geom.width_pixels,
        y=geom.height_pixels - y_from_bottom - height,
        width=rect.width_pct / 100 * geom.width_pixels,
        height=height,
    )


def percent_to_pdf(rect: PercentRect, geom: PageGeometry) -> PdfRect:
    """
    Percentages -> PDF points. Both spaces are bottom-origin, so no flip.
    """
    geom.check()
    return PdfRect(
        x=rect.x_pct / 100 * geom.width_points,
        y=rect.y_pct / 100 * geom.height_points,
        width=rect.width_pct / 100 * geom.width_points,
        height=rect.height_pct / 100 * geom.height_points,
    )


def pdf_to_percent(rect: PdfRect, geom: PageGeometry) -> PercentRect:
    geom.check()
    return PercentRect(
        x_pct=rect.x / geom.width_points * 100,
        y_pct=rect.y / geom.height_points * 100,
        width_pct=rect.width / geom.width_points * 100,
        height_pct=rect.height / geom.height_points * 100,
    )
