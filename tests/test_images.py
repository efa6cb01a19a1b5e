from __future__ import annotations

import sys
from pathlib import Path

import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from docai_ocr_pdf.errors import GeometryError
from docai_ocr_pdf.images import DEFAULT_DPI, load_scan


def test_load_scan_passes_jpeg_through(scan_image: Path):
    scan = load_scan(scan_image)

    assert scan.data == scan_image.read_bytes()
    assert (scan.width, scan.height) == (600, 300)
    assert scan.dpi == pytest.approx(300)
    assert scan.filter == "/DCTDecode"
    assert scan.color_space == "/DeviceRGB"


def test_load_scan_uses_default_dpi_without_metadata(tmp_path: Path):
    path = tmp_path / "nodpi.jpg"
    Image.new("L", (40, 20), 128).save(path)

    scan = load_scan(path)

    assert scan.dpi == DEFAULT_DPI
    assert scan.color_space == "/DeviceGray"


def test_load_scan_rejects_non_square_dpi(tmp_path: Path):
    path = tmp_path / "skewed.jpg"
    Image.new("RGB", (40, 20), "white").save(path, dpi=(300, 150))

    with pytest.raises(GeometryError, match="dpi not square"):
        load_scan(path)


def test_load_scan_decodes_png_samples(tmp_path: Path):
    path = tmp_path / "scan.png"
    Image.new("RGBA", (4, 3), (10, 20, 30, 255)).save(path)

    scan = load_scan(path)

    assert scan.filter is None
    assert scan.color_space == "/DeviceRGB"
    assert scan.data == bytes([10, 20, 30]) * 12


def test_load_scan_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError, match="Input image not found"):
        load_scan(tmp_path / "missing.jpg")
