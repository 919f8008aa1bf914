"""High-level pipeline orchestration for upload → preprocess → extract."""

from .process import (
    ALLOWED_MIME_TYPES,
    extract_text,
    guess_mime_type,
    normalize_mime_type,
    validate_image,
)

__all__ = [
    "ALLOWED_MIME_TYPES",
    "extract_text",
    "guess_mime_type",
    "normalize_mime_type",
    "validate_image",
]
