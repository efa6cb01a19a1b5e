from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .errors import CacheError

CACHE_SUFFIX = ".docai.json.zst"
COMPRESSION_LEVEL = 19


def cache_path(image_path: Path) -> Path:
    return image_path.with_name(image_path.name + CACHE_SUFFIX)


def load_cached(image_path: Path) -> dict[str, Any] | None:
    """Return the stored recognition result for ``image_path``, if any."""
    import zstandard

    path = cache_path(image_path)
    if not path.exists():
        return None
    try:
        # decompressobj also handles frames written without a content size
        raw = zstandard.ZstdDecompressor().decompressobj().decompress(path.read_bytes())
        return json.loads(raw.decode("utf-8"))
    except (zstandard.ZstdError, ValueError) as exc:
        raise CacheError(f"unreadable cache file {path}: {exc}") from exc


def store_cached(image_path: Path, result: dict[str, Any]) -> Path:
    import zstandard

    path = cache_path(image_path)
    payload = json.dumps(result, ensure_ascii=False, indent=2).encode("utf-8")
    compressed = zstandard.ZstdCompressor(level=COMPRESSION_LEVEL).compress(payload)
    with open(path, "xb") as f:
        f.write(compressed)
    return path
