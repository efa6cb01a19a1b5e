from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import RecognitionError

_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}


@dataclass(frozen=True)
class RecognizerConfig:
    api_endpoint: str
    # projects/<project>/locations/<location>/processors/<processor id>
    processor_name: str

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> RecognizerConfig:
        env = os.environ if environ is None else environ
        api_endpoint = env.get("API_ENDPOINT", "").strip()
        if not api_endpoint:
            raise RuntimeError("no API_ENDPOINT set in environment")
        processor_name = env.get("PROCESSOR_NAME", "").strip()
        if not processor_name:
            raise RuntimeError("no PROCESSOR_NAME set in environment")
        return cls(api_endpoint=api_endpoint, processor_name=processor_name)


def mime_type_for(image_path: Path) -> str:
    mime_type = _MIME_TYPES.get(image_path.suffix.lower())
    if mime_type is None:
        supported = ", ".join(sorted(_MIME_TYPES))
        raise ValueError(f"Unsupported image type: {image_path} (expected one of {supported})")
    return mime_type


def strip_page_images(result: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``result`` without the rendered page images.

    Document AI echoes every page image back; it is large and never used.
    The input mapping is left untouched.
    """
    document = result.get("document")
    if not isinstance(document, dict) or not document.get("pages"):
        return dict(result)

    pages = []
    for page in document["pages"]:
        image = page.get("image")
        if isinstance(image, dict) and "content" in image:
            image = {key: value for key, value in image.items() if key != "content"}
            page = {**page, "image": image}
        pages.append(page)
    return {**result, "document": {**document, "pages": pages}}


def recognize(image_path: Path, config: RecognizerConfig) -> dict[str, Any]:
    """Run the Document AI OCR processor on one image."""
    from google.api_core.client_options import ClientOptions
    from google.api_core.exceptions import GoogleAPICallError
    from google.auth.exceptions import GoogleAuthError
    from google.cloud import documentai

    mime_type = mime_type_for(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Input image not found: {image_path}")

    request = documentai.ProcessRequest(
        name=config.processor_name,
        raw_document=documentai.RawDocument(
            content=image_path.read_bytes(),
            mime_type=mime_type,
        ),
    )
    try:
        client = documentai.DocumentProcessorServiceClient(
            client_options=ClientOptions(api_endpoint=config.api_endpoint)
        )
        response = client.process_document(request=request)
    except (GoogleAPICallError, GoogleAuthError) as exc:
        raise RecognitionError(f"Document AI request failed for {image_path}: {exc}") from exc
    result = strip_page_images(documentai.ProcessResponse.to_dict(response))
    result["request_meta"] = {
        "api_endpoint": config.api_endpoint,
        "processor_name": config.processor_name,
    }
    return result
