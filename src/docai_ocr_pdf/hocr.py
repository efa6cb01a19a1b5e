from __future__ import annotations

import html

from .geometry import pixel_bbox
from .model import Page, Quad
from .segments import check_page_sorted, tokens_in_line

OCR_SYSTEM = "google document ai via docai-ocr-pdf"
OCR_CAPABILITIES = "ocr_page ocr_line ocrx_word"
HOCRJS_URL = "https://unpkg.com/hocrjs"


def _bbox_title(quad: Quad, size: tuple[int, int]) -> str:
    xmin, ymin, xmax, ymax = pixel_bbox(quad, size)
    return f"bbox {xmin} {ymin} {xmax} {ymax}"


def render_hocr(image_name: str, page: Page) -> str:
    """Render ``page`` as an hOCR document with one span per line and word."""
    check_page_sorted(page)
    size = page.size

    lines_markup: list[str] = []
    for line in page.lines:
        words = [
            f'<span class="ocrx_word" title="{_bbox_title(token.quad, size)}">'
            f"{html.escape(page.text_of(token.segment), quote=False)}</span>"
            for token in tokens_in_line(page, line.segment)
        ]
        lines_markup.append(
            f'<span class="ocr_line" title="{_bbox_title(line.quad, size)}">{"".join(words)}</span>'
        )

    page_title = html.escape(f'image "{image_name}"; bbox 0 0 {page.width} {page.height};')
    return (
        "<!DOCTYPE html>\n"
        "<html><head>"
        '<meta charset="utf-8"/>'
        f'<meta name="ocr-system" content="{html.escape(OCR_SYSTEM)}"/>'
        f'<meta name="ocr-capabilities" content="{OCR_CAPABILITIES}"/>'
        "</head><body>"
        f'<div class="ocr_page" title="{page_title}">{"".join(lines_markup)}</div>'
        f'<script src="{HOCRJS_URL}"></script>'
        "</body></html>\n"
    )
