"""
Tests for coordinate transforms between screen pixels, stored percentages
and PDF points.

Run with: pytest tests/test_coords.py -v
"""
import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.errors import ValidationError
from models import (
    PageGeometry,
    PdfRect,
    PercentRect,
    ScreenRect,
    screen_to_pdf,
    pdf_to_screen,
    screen_to_percent,
    percent_to_screen,
    percent_to_pdf,
    pdf_to_percent,
)

EPS = 1e-6


def letter_at(width_px=800):
    return PageGeometry.from_points(1, 612, 792, width_px)


def assert_rect_close(a, b, tol=EPS):
    for name in ("x", "y", "width", "height"):
        assert getattr(a, name) == pytest.approx(getattr(b, name), abs=tol), name


class TestPageGeometry:
    """Tests for geometry construction."""

    def test_uniform_scale(self):
        geom = letter_at(800)
        assert geom.scale == pytest.approx(800 / 612)
        assert geom.height_pixels == pytest.approx(792 * 800 / 612)
        assert geom.height_pixels == pytest.approx(1035.29, abs=0.01)

    def test_zero_size_rejected(self):
        with pytest.raises(ValidationError):
            PageGeometry.from_points(1, 0, 792, 800)

    def test_zero_render_width_rejected(self):
        with pytest.raises(ValidationError):
            PageGeometry.from_points(1, 612, 792, 0)

    def test_transforms_check_geometry(self):
        """A hand-built geometry with a zero dimension never divides."""
        bad = PageGeometry(1, 612, 792, 0, 1036, 1.3)
        with pytest.raises(ValidationError):
            screen_to_pdf(ScreenRect(0, 0, 10, 10), bad)
        with pytest.raises(ValidationError):
            percent_to_screen(PercentRect(0, 0, 10, 10), bad)


class TestPercentToPdf:
    """Percent and PDF points share a bottom-left origin."""

    def test_worked_example(self):
        """10/85/20/5 percent on a Letter page."""
        geom = PageGeometry(1, 612, 792, 800, 1036.07, 1.307)
        pdf = percent_to_pdf(PercentRect(10, 85, 20, 5), geom)
        assert pdf.x == pytest.approx(61.2)
        assert pdf.y == pytest.approx(673.2)
        assert pdf.width == pytest.approx(122.4)
        assert pdf.height == pytest.approx(39.6)

    def test_independent_of_render_width(self):
        rect = PercentRect(12.5, 40, 30, 7)
        a = percent_to_pdf(rect, letter_at(400))
        b = percent_to_pdf(rect, letter_at(1600))
        assert_rect_close(a, b)

    def test_round_trip(self):
        geom = PageGeometry.from_points(2, 595.28, 841.89, 900)
        rect = PercentRect(3.3, 71.9, 18.2, 4.4)
        back = pdf_to_percent(percent_to_pdf(rect, geom), geom)
        assert back.x_pct == pytest.approx(rect.x_pct)
        assert back.y_pct == pytest.approx(rect.y_pct)
        assert back.width_pct == pytest.approx(rect.width_pct)
        assert back.height_pct == pytest.approx(rect.height_pct)


class TestScreenTransforms:
    """Screen space is top-left; the other two are bottom-left."""

    def test_top_left_corner_flips(self):
        """A box at the screen's top-left sits at the top of the PDF page."""
        geom = letter_at(800)
        pdf = screen_to_pdf(ScreenRect(0, 0, 80, 40), geom)
        assert pdf.x == pytest.approx(0)
        assert pdf.y + pdf.height == pytest.approx(792)

    def test_screen_pdf_round_trip(self):
        geom = letter_at(1234)
        rect = ScreenRect(101.5, 333.25, 240, 61)
        assert_rect_close(pdf_to_screen(screen_to_pdf(rect, geom), geom), rect)

    def test_screen_percent_round_trip(self):
        geom = letter_at(640)
        rect = ScreenRect(12, 700, 150, 30)
        assert_rect_close(percent_to_screen(screen_to_percent(rect, geom), geom), rect)

    def test_percent_is_bottom_origin(self):
        """A box touching the screen bottom has y_pct == 0."""
        geom = letter_at(800)
        rect = ScreenRect(0, geom.height_pixels - 50, 100, 50)
        pct = screen_to_percent(rect, geom)
        assert pct.y_pct == pytest.approx(0, abs=EPS)

    def test_screen_and_percent_paths_agree(self):
        """screen -> pdf equals screen -> percent -> pdf."""
        geom = letter_at(950)
        rect = ScreenRect(48, 210, 190, 44)
        direct = screen_to_pdf(rect, geom)
        via_pct = percent_to_pdf(screen_to_percent(rect, geom), geom)
        assert_rect_close(direct, via_pct)

    def test_moving_down_on_screen_lowers_pdf_y(self):
        geom = letter_at(800)
        ys = [screen_to_pdf(ScreenRect(10, y, 50, 20), geom).y for y in (0, 100, 200, 300)]
        assert ys == sorted(ys, reverse=True)

    def test_overhanging_rect_is_not_clamped(self):
        geom = letter_at(800)
        pdf = percent_to_pdf(PercentRect(95, -2, 20, 10), geom)
        assert pdf.x + pdf.width > 612
        assert pdf.y < 0


class TestTransformLaws:
    """Properties every transform keeps, whatever the page."""

    def test_width_grows_with_percent(self):
        geom = PageGeometry.from_points(1, 595.28, 841.89, 800)
        widths = [
            percent_to_pdf(PercentRect(10, 10, w, 5), geom).width
            for w in (0.5, 1, 10, 33.3, 100, 140)
        ]
        assert all(a < b for a, b in zip(widths, widths[1:]))

    def test_zero_area_rect_through_every_transform(self):
        geom = letter_at(800)

        pdf = screen_to_pdf(ScreenRect(80, 120, 0, 0), geom)
        assert (pdf.width, pdf.height) == (0, 0)
        assert_rect_close(pdf_to_screen(pdf, geom), ScreenRect(80, 120, 0, 0))

        pct = screen_to_percent(ScreenRect(80, 120, 0, 0), geom)
        assert (pct.width_pct, pct.height_pct) == (0, 0)
        back = percent_to_screen(pct, geom)
        assert (back.x, back.y, back.width, back.height) == pytest.approx((80, 120, 0, 0))

        point = PdfRect(61.2, 400, 0, 0)
        pct = pdf_to_percent(point, geom)
        assert (pct.width_pct, pct.height_pct) == (0, 0)
        assert_rect_close(percent_to_pdf(pct, geom), point)
