from __future__ import annotations

import io
from collections import Counter
from functools import lru_cache
from pathlib import Path

from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen
from fontTools.ttLib import TTFont

GLYPHLESS_FAMILY = "GlyphLessFont"
_GLYPHLESS_UPM = 1000
_GLYPHLESS_ADVANCE = 500
_GLYPHLESS_ASCENT = 800
_GLYPHLESS_DESCENT = -200

_REPLACEMENT_CHAR = 0xFFFD
_BMP_SIZE = 0x10000


def encode_cids(text: str) -> list[int]:
    """One CID per character: the code point, or U+FFFD outside the BMP."""
    cids: list[int] = []
    for char in text:
        code = ord(char)
        if code >= _BMP_SIZE or 0xD800 <= code <= 0xDFFF:
            code = _REPLACEMENT_CHAR
        cids.append(code)
    return cids


class OcrFont:
    """TrueType font with the metrics needed to fit text onto word boxes."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self._ttf = TTFont(io.BytesIO(data))
        head = self._ttf["head"]
        hhea = self._ttf["hhea"]
        self.units_per_em: int = head.unitsPerEm
        self.ascent: int = hhea.ascent or head.yMax
        self.descent: int = hhea.descent or head.yMin
        self.bbox: tuple[int, int, int, int] = (head.xMin, head.yMin, head.xMax, head.yMax)
        self._cmap: dict[int, str] = self._ttf.getBestCmap() or {}
        self._hmtx = self._ttf["hmtx"]
        self._notdef = self._ttf.getGlyphOrder()[0]

    @property
    def postscript_name(self) -> str:
        name = self._ttf["name"].getDebugName(6) or GLYPHLESS_FAMILY
        return "".join(ch for ch in name if ch.isalnum() or ch in "-_") or GLYPHLESS_FAMILY

    def _glyph_name(self, code: int) -> str:
        return self._cmap.get(code, self._notdef)

    def advance(self, code: int) -> int:
        return self._hmtx[self._glyph_name(code)][0]

    def size_at_height(self, height: float) -> float:
        return height * self.units_per_em / (self.ascent - self.descent)

    def width_of_text_at_size(self, text: str, size: float) -> float:
        units = sum(self.advance(code) for code in encode_cids(text))
        return units * size / self.units_per_em

    def to_pdf_units(self, value: float) -> float:
        return value * 1000 / self.units_per_em

    def cid_widths(self) -> tuple[float, dict[int, float]]:
        """Default width and per-CID exceptions, in 1/1000 em."""
        widths = {
            code: self.to_pdf_units(self._hmtx[name][0])
            for code, name in self._cmap.items()
            if code < _BMP_SIZE
        }
        default = self.to_pdf_units(self._hmtx[self._notdef][0])
        if widths:
            default = Counter(widths.values()).most_common(1)[0][0]
        return default, {code: width for code, width in widths.items() if width != default}

    def cid_to_gid_map(self) -> bytes:
        table = bytearray(2 * _BMP_SIZE)
        for code, name in self._cmap.items():
            if code < _BMP_SIZE:
                gid = self._ttf.getGlyphID(name)
                table[2 * code] = gid >> 8
                table[2 * code + 1] = gid & 0xFF
        return bytes(table)


@lru_cache(maxsize=1)
def glyphless_font_data() -> bytes:
    """Build a TrueType font whose glyphs draw nothing.

    Every printable Latin-1 character maps to one empty glyph with a uniform
    advance; the remaining code points fall back to an equally wide ``.notdef``.
    Ascent and descent span exactly one em, so the font size equals the glyph
    height it is fitted to.
    """
    glyph_order = [".notdef", "glyphless"]
    builder = FontBuilder(_GLYPHLESS_UPM, isTTF=True)
    builder.setupGlyphOrder(glyph_order)
    cmap = {code: "glyphless" for code in range(0x20, 0x7F)}
    cmap.update({code: "glyphless" for code in range(0xA0, 0x100)})
    builder.setupCharacterMap(cmap)
    builder.setupGlyf({name: TTGlyphPen(None).glyph() for name in glyph_order})
    builder.setupHorizontalMetrics({name: (_GLYPHLESS_ADVANCE, 0) for name in glyph_order})
    builder.setupHorizontalHeader(ascent=_GLYPHLESS_ASCENT, descent=_GLYPHLESS_DESCENT)
    builder.setupNameTable(
        {
            "familyName": GLYPHLESS_FAMILY,
            "styleName": "Regular",
            "psName": GLYPHLESS_FAMILY,
        }
    )
    builder.setupOS2(
        sTypoAscender=_GLYPHLESS_ASCENT,
        sTypoDescender=_GLYPHLESS_DESCENT,
        usWinAscent=_GLYPHLESS_ASCENT,
        usWinDescent=-_GLYPHLESS_DESCENT,
    )
    builder.setupPost()
    buffer = io.BytesIO()
    builder.save(buffer)
    return buffer.getvalue()


def load_font(path: Path) -> OcrFont:
    if not path.exists():
        raise FileNotFoundError(f"Font file not found: {path}")
    return OcrFont(path.read_bytes())


def invisible_font() -> OcrFont:
    return OcrFont(glyphless_font_data())


def visible_font(path: Path | None) -> OcrFont:
    """Font with real glyphs for debug drawing."""
    if path is None:
        raise ValueError("debug drawing needs a visible font file")
    return load_font(path)
