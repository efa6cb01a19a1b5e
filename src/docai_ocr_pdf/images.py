from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .errors import GeometryError

DEFAULT_DPI = 300.0

_JPEG_COLOR_SPACES = {
    "L": "/DeviceGray",
    "RGB": "/DeviceRGB",
    "CMYK": "/DeviceCMYK",
}


@dataclass(frozen=True)
class ScanImage:
    data: bytes
    width: int
    height: int
    dpi: float
    color_space: str
    filter: str | None = None
    decode: tuple[int, ...] | None = None


def _read_dpi(info: dict) -> float:
    dpi = info.get("dpi")
    if not dpi:
        return DEFAULT_DPI
    xdpi, ydpi = (float(v) for v in dpi)
    if xdpi <= 0 and ydpi <= 0:
        return DEFAULT_DPI
    if xdpi != ydpi:
        raise GeometryError(f"dpi not square: {xdpi}x{ydpi}")
    return xdpi


def load_scan(image_path: Path) -> ScanImage:
    """Read a scan for embedding; JPEG data is passed through untouched."""
    from PIL import Image

    if not image_path.exists():
        raise FileNotFoundError(f"Input image not found: {image_path}")

    with Image.open(image_path) as image:
        width, height = image.size
        dpi = _read_dpi(image.info)

        if image.format == "JPEG" and image.mode in _JPEG_COLOR_SPACES:
            decode = None
            if image.mode == "CMYK" and "adobe" in image.info:
                decode = (1, 0, 1, 0, 1, 0, 1, 0)
            return ScanImage(
                data=image_path.read_bytes(),
                width=width,
                height=height,
                dpi=dpi,
                color_space=_JPEG_COLOR_SPACES[image.mode],
                filter="/DCTDecode",
                decode=decode,
            )

        if image.mode in ("1", "L", "LA", "I", "I;16"):
            pixels = image.convert("L")
            color_space = "/DeviceGray"
        else:
            pixels = image.convert("RGB")
            color_space = "/DeviceRGB"
        return ScanImage(
            data=pixels.tobytes(),
            width=width,
            height=height,
            dpi=dpi,
            color_space=color_space,
        )
