from __future__ import annotations

import math
from dataclasses import dataclass

from .model import Point, Quad, Transform


@dataclass(frozen=True)
class WordGeometry:
    angle: float  # radians
    length: float  # dots
    height: float  # dots


@dataclass(frozen=True)
class PageOrientation:
    x: float  # pixels
    y: float  # pixels
    rotation: float  # radians


def pixels_to_dots(pixels: float, dpi: float) -> float:
    return pixels / dpi * 72


def _scaled(point: Point, size: tuple[float, float]) -> Point:
    return (point[0] * size[0], point[1] * size[1])


def _midpoint(a: Point, b: Point) -> Point:
    return ((a[0] + b[0]) * 0.5, (a[1] + b[1]) * 0.5)


def word_geometry(quad: Quad, size: tuple[float, float]) -> WordGeometry:
    """Angle, printed length and glyph height of a word quad.

    ``size`` is the page size in the target unit. The quad is kept in image
    orientation (y down), so the angle is measured from the y axis and
    shifted by a quarter turn: a left-to-right word has angle 0.
    """
    tl, tr, br, bl = (_scaled(p, size) for p in quad.corners())
    left = _midpoint(tl, bl)
    right = _midpoint(tr, br)
    dx, dy = right[0] - left[0], right[1] - left[1]

    top = _midpoint(tl, tr)
    bottom = _midpoint(bl, br)
    return WordGeometry(
        angle=math.atan2(dx, dy) - math.pi / 2,
        length=math.hypot(dx, dy),
        height=math.hypot(top[0] - bottom[0], top[1] - bottom[1]),
    )


def page_orientation(transform: Transform | None, size: tuple[int, int]) -> PageOrientation:
    """Placement of the unrotated source image on the recognized page.

    Without a transform the image sits at the page origin; the y offset is
    the image height because PDF space grows upwards. With a transform the
    bottom-left image corner is mapped into page space.
    """
    _, height = size
    if transform is None:
        return PageOrientation(x=0.0, y=float(height), rotation=0.0)
    x, y = transform.apply(0, height)
    # https://math.stackexchange.com/a/13165
    rotation = -math.atan2(-transform.b, transform.a)
    return PageOrientation(x=x, y=y, rotation=rotation)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def pixel_bbox(quad: Quad, size: tuple[float, float]) -> tuple[int, int, int, int]:
    """Axis-aligned ``(xmin, ymin, xmax, ymax)`` of a quad, rounded to pixels."""
    xs = [_round_half_up(x * size[0]) for x, _ in quad.corners()]
    ys = [_round_half_up(y * size[1]) for _, y in quad.corners()]
    return min(xs), min(ys), max(xs), max(ys)
