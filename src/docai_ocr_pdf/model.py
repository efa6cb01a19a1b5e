from __future__ import annotations

import base64
import struct
from dataclasses import dataclass
from typing import Any

from .errors import GeometryError, MalformedSegmentError, StructuralError

Point = tuple[float, float]

# OpenCV type code of a single-channel 64-bit float matrix (CV_64FC1).
_CV_64F = 6


@dataclass(frozen=True)
class TextSegment:
    start: int
    end: int

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class Quad:
    top_left: Point
    top_right: Point
    bottom_right: Point
    bottom_left: Point

    def corners(self) -> tuple[Point, Point, Point, Point]:
        return (self.top_left, self.top_right, self.bottom_right, self.bottom_left)


@dataclass(frozen=True)
class Token:
    segment: TextSegment
    quad: Quad


@dataclass(frozen=True)
class Line:
    segment: TextSegment
    quad: Quad


@dataclass(frozen=True)
class Transform:
    """2x3 affine matrix ``[[a, b, c], [d, e, f]]``."""

    a: float
    b: float
    c: float
    d: float
    e: float
    f: float

    def apply(self, x: float, y: float) -> Point:
        return (self.a * x + self.b * y + self.c, self.d * x + self.e * y + self.f)


@dataclass(frozen=True)
class Page:
    text: str
    lines: tuple[Line, ...]
    tokens: tuple[Token, ...]
    width: int
    height: int
    transform: Transform | None = None

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def text_of(self, segment: TextSegment) -> str:
        return self.text[segment.start : segment.end]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _get(obj: Any, name: str) -> Any:
    """Read a wire field by its proto name or its JSON camelCase name."""
    if not isinstance(obj, dict):
        return None
    if name in obj:
        return obj[name]
    return obj.get(_camel(name))


def _parse_offset(value: Any, field: str) -> int:
    if value is None:
        raise MalformedSegmentError(f"text segment has no {field}")
    if isinstance(value, bool):
        raise MalformedSegmentError(f"text segment {field} is not an integer: {value!r}")
    if isinstance(value, int):
        offset = value
    elif isinstance(value, str) and value.strip().isdigit():
        offset = int(value)
    else:
        raise MalformedSegmentError(f"text segment {field} is not an integer: {value!r}")
    if offset < 0:
        raise MalformedSegmentError(f"text segment {field} is negative: {offset}")
    return offset


def parse_segment(layout: Any) -> TextSegment:
    segments = _get(_get(layout, "text_anchor"), "text_segments")
    if not segments or len(segments) != 1:
        count = len(segments) if segments else 0
        raise MalformedSegmentError(f"expected exactly one text segment, got {count}")
    raw = segments[0]
    start = _parse_offset(_get(raw, "start_index"), "start_index")
    end = _parse_offset(_get(raw, "end_index"), "end_index")
    if start > end:
        raise MalformedSegmentError(f"text segment start after end: {start}-{end}")
    return TextSegment(start, end)


def _coordinate(vertex: Any, axis: str) -> float:
    value = _get(vertex, axis)
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise GeometryError(f"vertex {axis} is not a number: {value!r}") from exc


def parse_quad(layout: Any) -> Quad:
    vertices = _get(_get(layout, "bounding_poly"), "normalized_vertices")
    if not vertices:
        raise GeometryError("no bounding quad")
    if len(vertices) != 4:
        raise GeometryError(f"bounding quad needs 4 corners, got {len(vertices)}")
    tl, tr, br, bl = ((_coordinate(v, "x"), _coordinate(v, "y")) for v in vertices)
    return Quad(tl, tr, br, bl)


def _matrix_bytes(data: Any) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, str):
        try:
            return base64.b64decode(data, validate=True)
        except ValueError as exc:
            raise GeometryError("transform data is not valid base64") from exc
    if isinstance(data, dict) and data.get("type") == "Buffer":
        data = data.get("data")
    if isinstance(data, list) and all(isinstance(b, int) and 0 <= b < 256 for b in data):
        return bytes(data)
    raise GeometryError(f"unsupported transform data: {type(data).__name__}")


def _matrix_type(raw: Any) -> Any:
    # ProcessResponse.to_dict writes this field as type_
    if isinstance(raw, dict) and "type_" in raw:
        return raw["type_"]
    return _get(raw, "type")


def parse_transform(raw: Any) -> Transform:
    matrix_type = _matrix_type(raw)
    if matrix_type != _CV_64F:
        raise GeometryError(f"transform is not a 64-bit float matrix: type {matrix_type!r}")
    rows, cols = _get(raw, "rows"), _get(raw, "cols")
    if rows != 2 or cols != 3:
        raise GeometryError(f"transform must be 2x3, got {rows}x{cols}")
    data = _matrix_bytes(_get(raw, "data"))
    if len(data) != 6 * 8:
        raise GeometryError(f"transform data must hold 6 doubles, got {len(data)} bytes")
    return Transform(*struct.unpack("<6d", data))


def page_transform(transforms: Any) -> Transform | None:
    if not transforms:
        return None
    if len(transforms) != 1:
        raise StructuralError(f"expected at most one transform, got {len(transforms)}")
    return parse_transform(transforms[0])


def _page_size(raw_page: Any) -> tuple[int, int]:
    """Pixel size from ``image``, or from ``dimension`` when the image has none."""
    seen: tuple[int, int] | None = None
    for source in ("image", "dimension"):
        info = _get(raw_page, source)
        width, height = _get(info, "width"), _get(info, "height")
        if width is None or height is None:
            continue
        try:
            size = (int(width), int(height))
        except (TypeError, ValueError) as exc:
            raise StructuralError(f"page size is not numeric: {width!r}x{height!r}") from exc
        if size[0] > 0 and size[1] > 0:
            return size
        seen = seen or size
    if seen is None:
        raise StructuralError("no width or height")
    raise StructuralError(f"page size must be positive, got {seen[0]}x{seen[1]}")


def parse_result(raw: dict[str, Any]) -> Page:
    """Validate a recognition result and convert it into a :class:`Page`.

    Accepts the JSON form of a Document AI ``ProcessResponse`` (or a bare
    ``Document``), with either proto field names or camelCase names.
    Every structural, segment and geometry invariant is checked here, so code
    downstream never sees optional fields.
    """
    document = _get(raw, "document") if _get(raw, "document") is not None else raw
    if not isinstance(document, dict):
        raise StructuralError("no document in recognition result")

    pages = _get(document, "pages")
    if not pages or len(pages) != 1:
        raise StructuralError(f"not exactly one page: {len(pages) if pages else 0}")
    text = _get(document, "text")
    if not text:
        raise StructuralError("no text")

    raw_page = pages[0]
    raw_lines = _get(raw_page, "lines")
    if raw_lines is None:
        raise StructuralError("no lines")
    raw_tokens = _get(raw_page, "tokens")
    if raw_tokens is None:
        raise StructuralError("no tokens")

    lines = tuple(
        Line(parse_segment(_get(item, "layout")), parse_quad(_get(item, "layout")))
        for item in raw_lines
    )
    tokens = tuple(
        Token(parse_segment(_get(item, "layout")), parse_quad(_get(item, "layout")))
        for item in raw_tokens
    )
    width, height = _page_size(raw_page)

    return Page(
        text=text,
        lines=lines,
        tokens=tokens,
        width=width,
        height=height,
        transform=page_transform(_get(raw_page, "transforms")),
    )
