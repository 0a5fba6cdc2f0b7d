"""
Shared fixtures: small PDFs built with fpdf2 and images built with Pillow.
"""
import base64
import io

import pytest
from fpdf import FPDF
from PIL import Image

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

LETTER = (612.0, 792.0)
A4 = (595.28, 841.89)


def build_pdf(*page_sizes):
    """One page per (width, height) in points; defaults to a single Letter page."""
    sizes = page_sizes or (LETTER,)
    pdf = FPDF(unit="pt", format=sizes[0])
    pdf.set_auto_page_break(auto=False)
    for w, h in sizes:
        pdf.add_page(format=(w, h))
    return bytes(pdf.output())


def image_bytes(width, height, fmt="PNG", color=(200, 30, 30)):
    img = Image.new("RGB", (width, height), color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def data_url(width, height, fmt="PNG"):
    mime = "image/png" if fmt == "PNG" else "image/jpeg"
    payload = base64.b64encode(image_bytes(width, height, fmt)).decode("ascii")
    return f"data:{mime};base64,{payload}"


@pytest.fixture
def letter_pdf():
    return build_pdf(LETTER)


@pytest.fixture
def mixed_pdf():
    """Letter, A4, then a landscape Letter page."""
    return build_pdf(LETTER, A4, (792.0, 612.0))


@pytest.fixture
def png_data_url():
    return data_url(200, 100, "PNG")


@pytest.fixture
def jpeg_data_url():
    return data_url(100, 100, "JPEG")
