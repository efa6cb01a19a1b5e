from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

from .cache import load_cached, store_cached
from .compositor import PdfCompositor, RenderOptions
from .errors import CacheError, OcrLayoutError, RecognitionError
from .hocr import render_hocr
from .model import parse_result
from .recognizer import RecognizerConfig, recognize


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docai-ocr-pdf",
        description=(
            "Add an invisible, searchable text layer to scanned images using "
            "Google Document AI OCR results."
        ),
    )
    parser.add_argument(
        "input",
        type=Path,
        nargs="+",
        help="Input images (jpg, png or tiff); PDF pages follow this order",
    )
    parser.add_argument(
        "--debug-draw",
        action="store_true",
        help="Draw word boxes and visible text over a faded image in the PDF",
    )
    parser.add_argument(
        "--write-hocr",
        action="store_true",
        help="Write an hOCR file per input image, named <image>.hocr",
    )
    parser.add_argument(
        "--write-pdf",
        type=Path,
        default=None,
        metavar="PDF",
        help="Write all input images as pages of one PDF with this name",
    )
    parser.add_argument(
        "--write-txt",
        action="store_true",
        help="Write the recognized text per input image, named <image>.ocr.txt",
    )
    parser.add_argument(
        "--visible-font",
        type=Path,
        default=None,
        help="TrueType font for --debug-draw text (required with --debug-draw)",
    )
    return parser


def _validate_args(args: argparse.Namespace) -> None:
    if not (args.write_hocr or args.write_pdf or args.write_txt):
        raise ValueError("Nothing to do: pass --write-pdf, --write-hocr and/or --write-txt")
    for image_path in args.input:
        if not image_path.exists():
            raise FileNotFoundError(f"Input file not found: {image_path}")
    if args.debug_draw and args.visible_font is None:
        raise ValueError("--debug-draw requires --visible-font")
    if args.visible_font is not None and not args.visible_font.exists():
        raise FileNotFoundError(f"Font file not found: {args.visible_font}")


def _recognize_cached(image_path: Path, config: RecognizerConfig | None) -> dict[str, Any]:
    result = load_cached(image_path)
    if result is not None:
        return result
    if config is None:
        config = RecognizerConfig.from_env()
    result = recognize(image_path, config)
    store_cached(image_path, result)
    return result


def process_image(
    image_path: Path,
    *,
    write_txt: bool = False,
    write_hocr: bool = False,
    compositor: PdfCompositor | None = None,
    recognizer_config: RecognizerConfig | None = None,
) -> None:
    result = _recognize_cached(image_path, recognizer_config)

    text = (result.get("document") or {}).get("text")
    if write_txt and text:
        txt_path = image_path.with_name(image_path.name + ".ocr.txt")
        txt_path.write_text(text, encoding="utf-8")
        print(f"wrote txt to {txt_path}")

    page = parse_result(result)

    if write_hocr:
        hocr_path = image_path.with_name(image_path.name + ".hocr")
        hocr_path.write_text(render_hocr(image_path.name, page), encoding="utf-8")
        print(f"wrote hocr to {hocr_path}")

    if compositor is not None:
        compositor.add_page(image_path, page)


def run(
    inputs: list[Path],
    *,
    output_pdf: Path | None = None,
    write_hocr: bool = False,
    write_txt: bool = False,
    debug_draw: bool = False,
    visible_font: Path | None = None,
    recognizer_config: RecognizerConfig | None = None,
) -> Path | None:
    compositor = None
    if output_pdf is not None:
        compositor = PdfCompositor(RenderOptions(debug_draw=debug_draw, visible_font=visible_font))

    for image_path in inputs:
        process_image(
            image_path,
            write_txt=write_txt,
            write_hocr=write_hocr,
            compositor=compositor,
            recognizer_config=recognizer_config,
        )
        print(f"processed {image_path}")

    if compositor is not None and output_pdf is not None:
        compositor.save(output_pdf)
        print(f"wrote pdf to {output_pdf}")
    return output_pdf


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        _validate_args(args)
        run(
            args.input,
            output_pdf=args.write_pdf,
            write_hocr=args.write_hocr,
            write_txt=args.write_txt,
            debug_draw=args.debug_draw,
            visible_font=args.visible_font,
        )
    except OcrLayoutError as exc:
        print(f"Error: invalid recognition result: {exc}", file=sys.stderr)
        return 2
    except RecognitionError as exc:
        print(f"Error: recognition failed: {exc}", file=sys.stderr)
        return 2
    except CacheError as exc:
        print(f"Error: {exc} (delete it to recognize again)", file=sys.stderr)
        return 2
    except (FileNotFoundError, FileExistsError, RuntimeError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
