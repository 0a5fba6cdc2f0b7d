"""
Tests for page geometry resolution (pypdfium2).

Run with: pytest tests/test_geometry.py -v
"""
import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from conftest import A4, LETTER, build_pdf
from core.errors import SourceLoadError, ValidationError
from core.geometry import count_pages, resolve_all, resolve_geometry


class TestResolveGeometry:
    """Single-page resolution."""

    def test_letter(self, letter_pdf):
        geom = resolve_geometry(letter_pdf, 1, 800)
        assert geom.page_number == 1
        assert geom.width_points == pytest.approx(612, abs=0.01)
        assert geom.height_points == pytest.approx(792, abs=0.01)
        assert geom.width_pixels == 800
        assert geom.scale == pytest.approx(800 / 612, rel=1e-4)

    def test_each_page_has_its_own_size(self, mixed_pdf):
        a4 = resolve_geometry(mixed_pdf, 2, 800)
        landscape = resolve_geometry(mixed_pdf, 3, 800)
        assert a4.width_points == pytest.approx(A4[0], abs=0.01)
        assert a4.height_points == pytest.approx(A4[1], abs=0.01)
        assert landscape.width_points == pytest.approx(792, abs=0.01)
        assert landscape.height_pixels < landscape.width_pixels

    def test_render_width_changes_pixels_not_points(self, letter_pdf):
        small = resolve_geometry(letter_pdf, 1, 400)
        large = resolve_geometry(letter_pdf, 1, 1600)
        assert small.width_points == large.width_points
        assert large.height_pixels == pytest.approx(4 * small.height_pixels)

    def test_page_out_of_range(self, letter_pdf):
        with pytest.raises(ValidationError):
            resolve_geometry(letter_pdf, 2, 800)
        with pytest.raises(ValidationError):
            resolve_geometry(letter_pdf, 0, 800)

    def test_not_a_pdf(self):
        with pytest.raises(SourceLoadError):
            resolve_geometry(b"definitely not a pdf", 1, 800)

    def test_empty_bytes(self):
        with pytest.raises(SourceLoadError):
            resolve_geometry(b"", 1, 800)


class TestResolveAll:

    def test_all_pages_in_order(self, mixed_pdf):
        pages = resolve_all(mixed_pdf, 1000)
        assert [p.page_number for p in pages] == [1, 2, 3]
        assert pages[0].width_points == pytest.approx(LETTER[0], abs=0.01)
        assert pages[1].width_points == pytest.approx(A4[0], abs=0.01)

    def test_count_pages(self):
        assert count_pages(build_pdf(LETTER, LETTER, LETTER, A4)) == 4
