from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .errors import AlignmentError
from .fitting import fit_word
from .fonts import OcrFont, encode_cids, invisible_font, visible_font
from .geometry import page_orientation, pixels_to_dots, word_geometry
from .images import load_scan
from .model import Line, Page, Quad, Token
from .segments import check_page_sorted, tokens_in_line

if TYPE_CHECKING:
    import pikepdf

CREATOR = "docai-ocr-pdf"

FONT_RESOURCE = "F1"
IMAGE_RESOURCE = "Im0"
STATE_RESOURCE = "GS0"

TEXT_MODE_FILL = 0
TEXT_MODE_INVISIBLE = 3

DEBUG_IMAGE_OPACITY = 0.3


@dataclass(frozen=True)
class RenderOptions:
    debug_draw: bool = False
    visible_font: Path | None = None


def _num(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def _rotation(angle: float) -> str:
    cos, sin = math.cos(angle), math.sin(angle)
    return f"{_num(cos)} {_num(sin)} {_num(-sin)} {_num(cos)}"


def _hex_text(text: str) -> str:
    return "".join(f"{cid:04X}" for cid in encode_cids(text))


def _width_array(widths: dict[int, float]) -> list[Any]:
    """Group per-CID widths into runs of consecutive CIDs: ``c [w1 w2 ...]``."""
    import pikepdf

    runs: list[Any] = []
    run_start: int | None = None
    run: list[float] = []
    for cid in sorted(widths):
        if run_start is not None and cid == run_start + len(run):
            run.append(widths[cid])
            continue
        if run_start is not None:
            runs.extend([run_start, pikepdf.Array(run)])
        run_start, run = cid, [widths[cid]]
    if run_start is not None:
        runs.extend([run_start, pikepdf.Array(run)])
    return runs


def _to_unicode_cmap() -> bytes:
    # CIDs are BMP code points, so the map is the identity.
    ranges = [
        f"<{high:02X}00> <{high:02X}FF> <{high:02X}00>"
        for high in range(0x100)
        if not 0xD8 <= high <= 0xDF
    ]
    blocks: list[str] = []
    for i in range(0, len(ranges), 100):
        chunk = ranges[i : i + 100]
        blocks.append(f"{len(chunk)} beginbfrange\n" + "\n".join(chunk) + "\nendbfrange")
    return (
        "/CIDInit /ProcSet findresource begin\n"
        "12 dict begin\n"
        "begincmap\n"
        "/CIDSystemInfo << /Registry (Adobe) /Ordering (UCS) /Supplement 0 >> def\n"
        "/CMapName /Adobe-Identity-UCS def\n"
        "/CMapType 2 def\n"
        "1 begincodespacerange\n<0000> <FFFF>\nendcodespacerange\n"
        + "\n".join(blocks)
        + "\nendcmap\n"
        "CMapName currentdict /CMap defineresource pop\n"
        "end\nend\n"
    ).encode("ascii")


def _embed_font(pdf: pikepdf.Pdf, font: OcrFont) -> pikepdf.Object:
    from pikepdf import Array, Dictionary, Name, String

    base_font = Name("/" + font.postscript_name)
    x_min, y_min, x_max, y_max = (font.to_pdf_units(v) for v in font.bbox)
    ascent = font.to_pdf_units(font.ascent)
    descent = font.to_pdf_units(font.descent)
    if x_min == x_max or y_min == y_max:
        x_min, y_min, x_max, y_max = 0.0, descent, 1000.0, ascent

    font_file = pdf.make_stream(font.data)
    font_file.Length1 = len(font.data)
    descriptor = Dictionary(
        Type=Name.FontDescriptor,
        FontName=base_font,
        Flags=4,
        FontBBox=Array([x_min, y_min, x_max, y_max]),
        ItalicAngle=0,
        Ascent=ascent,
        Descent=descent,
        CapHeight=ascent,
        StemV=80,
        FontFile2=font_file,
    )

    default_width, widths = font.cid_widths()
    cid_font = Dictionary(
        Type=Name.Font,
        Subtype=Name.CIDFontType2,
        BaseFont=base_font,
        CIDSystemInfo=Dictionary(
            Registry=String("Adobe"),
            Ordering=String("Identity"),
            Supplement=0,
        ),
        FontDescriptor=pdf.make_indirect(descriptor),
        DW=default_width,
        W=Array(_width_array(widths)),
        CIDToGIDMap=pdf.make_stream(font.cid_to_gid_map()),
    )
    return pdf.make_indirect(
        Dictionary(
            Type=Name.Font,
            Subtype=Name.Type0,
            BaseFont=base_font,
            Encoding=Name("/Identity-H"),
            DescendantFonts=Array([pdf.make_indirect(cid_font)]),
            ToUnicode=pdf.make_stream(_to_unicode_cmap()),
        )
    )


def line_words(page: Page, line: Line) -> list[tuple[Token, str]]:
    """Tokens of ``line`` with their text; the line break is cut off the last one."""
    tokens = tokens_in_line(page, line.segment)
    words = [(token, page.text_of(token.segment)) for token in tokens]
    last_token, last_text = words[-1]
    if not last_text.endswith("\n"):
        raise AlignmentError(
            f"last word in line {line.segment} should end with \\n, got {last_text!r}"
        )
    words[-1] = (last_token, last_text[:-1])
    return words


class PdfCompositor:
    """Appends scanned pages with a fitted text layer to one output document."""

    def __init__(self, options: RenderOptions | None = None, font: OcrFont | None = None) -> None:
        import pikepdf

        self.options = options or RenderOptions()
        if font is None:
            font = (
                visible_font(self.options.visible_font)
                if self.options.debug_draw
                else invisible_font()
            )
        self.font = font
        self.pdf = pikepdf.Pdf.new()
        self.pdf.docinfo["/Creator"] = CREATOR
        self._font_ref: pikepdf.Object | None = None

    @property
    def page_count(self) -> int:
        return len(self.pdf.pages)

    def _font_resource(self) -> pikepdf.Object:
        if self._font_ref is None:
            self._font_ref = _embed_font(self.pdf, self.font)
        return self._font_ref

    def _quad_outline(self, quad: Quad, width: float, height: float) -> str:
        points = [f"{_num(x * width)} {_num(height - y * height)}" for x, y in quad.corners()]
        path = f"{points[0]} m " + " ".join(f"{p} l" for p in points[1:])
        return f"q 0 1 0 RG 1 w {path} h S Q"

    def _word_ops(self, token: Token, text: str, width: float, height: float) -> list[str]:
        geometry = word_geometry(token.quad, (width, height))
        fit = fit_word(self.font, text, geometry)
        if fit is None:
            return []

        ops: list[str] = []
        if self.options.debug_draw:
            ops.append(self._quad_outline(token.quad, width, height))
        mode = TEXT_MODE_FILL if self.options.debug_draw else TEXT_MODE_INVISIBLE
        x, y = token.quad.bottom_left
        ops.append(
            f"q BT {mode} Tr 0 0 0 rg /{FONT_RESOURCE} {_num(fit.size)} Tf "
            f"{_num(fit.horizontal_scale)} Tz {_rotation(geometry.angle)} "
            f"{_num(x * width)} {_num(height - y * height)} Tm <{_hex_text(text)}> Tj ET Q"
        )
        return ops

    def add_page(self, image_path: Path, page: Page) -> int:
        """Add one page for ``image_path``; returns the number of words drawn."""
        from pikepdf import Array, Dictionary, Name

        check_page_sorted(page)
        scan = load_scan(image_path)

        def dots(pixels: float) -> float:
            return pixels_to_dots(pixels, scan.dpi)

        width, height = dots(page.width), dots(page.height)
        pdf_page = self.pdf.add_blank_page(page_size=(width, height))

        image = self.pdf.make_stream(b"")
        image.Type = Name.XObject
        image.Subtype = Name.Image
        image.Width = scan.width
        image.Height = scan.height
        image.ColorSpace = Name(scan.color_space)
        image.BitsPerComponent = 8
        if scan.decode is not None:
            image.Decode = Array(scan.decode)
        if scan.filter is not None:
            image.write(scan.data, filter=Name(scan.filter))
        else:
            image.write(scan.data)

        opacity = DEBUG_IMAGE_OPACITY if self.options.debug_draw else 1.0
        pdf_page.obj.Resources = Dictionary(
            Font=Dictionary({f"/{FONT_RESOURCE}": self._font_resource()}),
            XObject=Dictionary({f"/{IMAGE_RESOURCE}": image}),
            ExtGState=Dictionary(
                {f"/{STATE_RESOURCE}": Dictionary(Type=Name.ExtGState, ca=opacity, CA=opacity)}
            ),
        )

        orientation = page_orientation(page.transform, (scan.width, scan.height))
        ops = [
            f"q /{STATE_RESOURCE} gs 1 0 0 1 {_num(dots(orientation.x))} "
            f"{_num(height - dots(orientation.y))} cm {_rotation(orientation.rotation)} 0 0 cm "
            f"{_num(dots(scan.width))} 0 0 {_num(dots(scan.height))} 0 0 cm /{IMAGE_RESOURCE} Do Q"
        ]

        drawn = 0
        for line in page.lines:
            for token, text in line_words(page, line):
                word_ops = self._word_ops(token, text, width, height)
                if word_ops:
                    ops.extend(word_ops)
                    drawn += 1

        pdf_page.contents_add(self.pdf.make_stream("\n".join(ops).encode("ascii") + b"\n"))
        return drawn

    def save(self, output_pdf: Path) -> None:
        output_pdf.parent.mkdir(parents=True, exist_ok=True)
        self.pdf.save(output_pdf)
