"""High-level pipeline: validate upload → preprocess → extract text via the API.

This module orchestrates one request and provides the single entry point
`extract_text` shared by the HTTP API and the CLI.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from typing import Callable, Iterable, Optional

from openai import OpenAI

from gravixocr.config import Settings
from gravixocr.errors import (
    EmptyImageError,
    ImageTooLargeError,
    MissingCredentialError,
    NoImageProvidedError,
    UnsupportedMediaTypeError,
)
from gravixocr.image import process_image_for_ocr
from gravixocr.llm import build_data_url, create_client, request_text_extraction
from gravixocr.model import ExtractionResult, ImageBuffer, ProcessedImageBuffer

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/webp"})

_MIME_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}
_EXTENSION_MIME = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}

ClientFactory = Callable[[Settings], OpenAI]


def normalize_mime_type(mime_type: Optional[str]) -> Optional[str]:
    if not mime_type:
        return None
    base = mime_type.split(";", 1)[0].strip().lower()
    return _MIME_ALIASES.get(base, base)


def guess_mime_type(path: str) -> Optional[str]:
    """Guess an allowed MIME type from a file extension (CLI input)."""
    return _EXTENSION_MIME.get(os.path.splitext(path)[1].lower())


def validate_image(image: Optional[ImageBuffer], max_bytes: int,
                   allowed: Iterable[str] = ALLOWED_MIME_TYPES) -> ImageBuffer:
    """Check presence, size and type of an upload.

    Doxygen:
    - @param image: Uploaded buffer, or None if no file was attached.
    - @param max_bytes: Largest accepted size in bytes.
    - @param allowed: Accepted MIME types.
    - @return: The buffer with a normalized MIME type.
    - @throws InvalidInputError: Missing, empty, oversized or unsupported upload.
    """
    if image is None:
        raise NoImageProvidedError()
    if image.size == 0:
        raise EmptyImageError(image.filename)
    if image.size > max_bytes:
        raise ImageTooLargeError(image.size, max_bytes)
    allowed = frozenset(allowed)
    mime_type = normalize_mime_type(image.mime_type)
    if mime_type not in allowed:
        raise UnsupportedMediaTypeError(image.mime_type, allowed)
    if mime_type != image.mime_type:
        return replace(image, mime_type=mime_type)
    return image


def extract_text(
    image: Optional[ImageBuffer],
    settings: Settings,
    client_factory: ClientFactory = create_client,
    preprocess: bool = True,
) -> ExtractionResult:
    """Run the full upload → preprocess → inference pipeline for one request.

    The credential is checked first and the upload validated second, so
    neither failure reaches the network. Each call builds and closes its
    own client.

    Doxygen:
    - @param image: Uploaded image buffer (None if no file was attached).
    - @param settings: Settings loaded for this request.
    - @param client_factory: Builds the API client from settings.
    - @param preprocess: False sends the original bytes unchanged.
    - @return: Extraction result with the model's text.
    - @throws OcrError: Any classified, non-recoverable failure.
    """
    if not settings.has_credential:
        logger.error("GRAVIXLAYER_API_KEY environment variable is NOT set.")
        raise MissingCredentialError()
    logger.info("GRAVIXLAYER_API_KEY is present. First 5 chars: %s...", settings.api_key[:5])

    image = validate_image(image, settings.max_upload_bytes)
    logger.info(
        "Received image file: %s, type: %s, size: %d bytes.",
        image.filename, image.mime_type, image.size,
    )

    if preprocess:
        processed = process_image_for_ocr(image)
    else:
        processed = ProcessedImageBuffer(data=image.data, mime_type=image.mime_type, fallback=True)

    data_url = build_data_url(processed.data, processed.mime_type)
    logger.info("Image converted to base64. Data URL length: %d characters.", len(data_url))

    with client_factory(settings) as client:
        text = request_text_extraction(client, settings, data_url)

    logger.info("Extracted text (first 100 chars): %s...", text[:100])
    return ExtractionResult(text=text, preprocessed=not processed.fallback)
