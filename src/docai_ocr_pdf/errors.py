from __future__ import annotations


class OcrLayoutError(ValueError):
    """Recognition result cannot be turned into a text layer."""


class MalformedSegmentError(OcrLayoutError):
    pass


class UnsortedInputError(OcrLayoutError):
    pass


class AlignmentError(OcrLayoutError):
    pass


class GeometryError(OcrLayoutError):
    pass


class StructuralError(OcrLayoutError):
    pass


class RecognitionError(RuntimeError):
    """The OCR service call failed."""


class CacheError(ValueError):
    """A cached recognition result cannot be read back."""
