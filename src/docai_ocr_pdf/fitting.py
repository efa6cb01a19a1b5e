from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .geometry import WordGeometry


class FontMetrics(Protocol):
    def size_at_height(self, height: float) -> float: ...

    def width_of_text_at_size(self, text: str, size: float) -> float: ...


@dataclass(frozen=True)
class FontFit:
    size: float  # points
    horizontal_scale: float  # percent


def fit_word(font: FontMetrics, text: str, geometry: WordGeometry) -> FontFit | None:
    """Font size and horizontal scale that make ``text`` cover the word box.

    Trailing whitespace is not measured since the box ends at the last glyph.
    Returns ``None`` when nothing measurable is left to stretch.
    """
    size = font.size_at_height(geometry.height)
    natural_width = font.width_of_text_at_size(text.rstrip(), size)
    if natural_width <= 0:
        return None
    return FontFit(size=size, horizontal_scale=100.0 * geometry.length / natural_width)
