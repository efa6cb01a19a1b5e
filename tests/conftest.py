from __future__ import annotations

import struct
from pathlib import Path
from typing import Any, Callable

import pytest

SAMPLE_TEXT = "Hello world\nSecond line\n"

# (start, end, (x0, y0, x1, y1)) in normalized page coordinates
SAMPLE_TOKENS = [
    (0, 6, (0.1, 0.1, 0.3, 0.2)),
    (6, 12, (0.35, 0.1, 0.55, 0.2)),
    (12, 19, (0.1, 0.4, 0.35, 0.5)),
    (19, 24, (0.4, 0.4, 0.55, 0.5)),
]
SAMPLE_LINES = [
    (0, 12, (0.1, 0.1, 0.55, 0.2)),
    (12, 24, (0.1, 0.4, 0.55, 0.5)),
]
SAMPLE_WIDTH = 600
SAMPLE_HEIGHT = 300
# 2x3 deskew matrix turning the image a quarter turn
SAMPLE_TRANSFORM = (0.0, -1.0, 300.0, 1.0, 0.0, 0.0)


def box_vertices(box: tuple[float, float, float, float]) -> list[dict[str, float]]:
    x0, y0, x1, y1 = box
    return [{"x": x0, "y": y0}, {"x": x1, "y": y0}, {"x": x1, "y": y1}, {"x": x0, "y": y1}]


def layout(start: int, end: int, box: tuple[float, float, float, float]) -> dict[str, Any]:
    return {
        "text_anchor": {"text_segments": [{"start_index": str(start), "end_index": str(end)}]},
        "bounding_poly": {"normalized_vertices": box_vertices(box)},
    }


def build_result(
    text: str = SAMPLE_TEXT,
    lines: list = SAMPLE_LINES,
    tokens: list = SAMPLE_TOKENS,
    *,
    width: int = SAMPLE_WIDTH,
    height: int = SAMPLE_HEIGHT,
    transforms: list | None = None,
) -> dict[str, Any]:
    page: dict[str, Any] = {
        "page_number": 1,
        "image": {"width": width, "height": height, "mime_type": "image/jpeg"},
        "lines": [{"layout": layout(*line)} for line in lines],
        "tokens": [{"layout": layout(*token)} for token in tokens],
        "transforms": transforms or [],
    }
    return {"document": {"text": text, "pages": [page]}}


@pytest.fixture
def make_result() -> Callable[..., dict[str, Any]]:
    return build_result


@pytest.fixture
def sample_result() -> dict[str, Any]:
    return build_result()


@pytest.fixture
def scan_image(tmp_path: Path) -> Path:
    from PIL import Image

    path = tmp_path / "scan.jpg"
    Image.new("RGB", (SAMPLE_WIDTH, SAMPLE_HEIGHT), "white").save(path, dpi=(300, 300))
    return path


@pytest.fixture
def visible_font_file(tmp_path: Path) -> Path:
    """A small TrueType font whose printable ASCII glyphs are filled boxes."""
    from fontTools.fontBuilder import FontBuilder
    from fontTools.pens.ttGlyphPen import TTGlyphPen

    pen = TTGlyphPen(None)
    pen.moveTo((50, 0))
    pen.lineTo((50, 700))
    pen.lineTo((550, 700))
    pen.lineTo((550, 0))
    pen.closePath()

    builder = FontBuilder(1000, isTTF=True)
    builder.setupGlyphOrder([".notdef", "box"])
    builder.setupCharacterMap({code: "box" for code in range(0x20, 0x7F)})
    builder.setupGlyf({".notdef": TTGlyphPen(None).glyph(), "box": pen.glyph()})
    builder.setupHorizontalMetrics({".notdef": (600, 0), "box": (600, 50)})
    builder.setupHorizontalHeader(ascent=800, descent=-200)
    builder.setupNameTable({"familyName": "BoxSans", "styleName": "Regular", "psName": "BoxSans"})
    builder.setupOS2(sTypoAscender=800, sTypoDescender=-200, usWinAscent=800, usWinDescent=200)
    builder.setupPost()

    path = tmp_path / "BoxSans.ttf"
    builder.save(str(path))
    return path


@pytest.fixture
def docai_response():
    """The sample page as a Document AI ProcessResponse, with page image and transform."""
    from google.cloud import documentai

    page_type = documentai.Document.Page

    def layout_proto(start, end, box):
        return page_type.Layout(
            text_anchor=documentai.Document.TextAnchor(
                text_segments=[
                    documentai.Document.TextAnchor.TextSegment(start_index=start, end_index=end)
                ]
            ),
            bounding_poly=documentai.BoundingPoly(
                normalized_vertices=[documentai.NormalizedVertex(**v) for v in box_vertices(box)]
            ),
        )

    page = page_type(
        page_number=1,
        image=page_type.Image(
            content=b"\xff\xd8\xff\xe0 scan",
            mime_type="image/jpeg",
            width=SAMPLE_WIDTH,
            height=SAMPLE_HEIGHT,
        ),
        transforms=[
            page_type.Matrix(rows=2, cols=3, type_=6, data=struct.pack("<6d", *SAMPLE_TRANSFORM))
        ],
        lines=[page_type.Line(layout=layout_proto(*line)) for line in SAMPLE_LINES],
        tokens=[page_type.Token(layout=layout_proto(*token)) for token in SAMPLE_TOKENS],
    )
    return documentai.ProcessResponse(
        document=documentai.Document(text=SAMPLE_TEXT, pages=[page])
    )
