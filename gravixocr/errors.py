"""Error taxonomy for the OCR service.

Every failure surfaced to a caller is an ``OcrError`` carrying a stable
``error_code`` and the HTTP status the API answers with. Preprocessing
failures are the only kind recovered locally (see ``gravixocr.image``).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class OcrError(Exception):
    """Base exception for OCR service errors."""

    status_code = 500

    def __init__(self, message: str, error_code: str, details: Optional[Dict[str, Any]] = None,
                 status_code: Optional[int] = None) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to JSON-serializable dict."""
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


# Input errors
class InvalidInputError(OcrError):
    """Bad, missing or oversized upload."""

    status_code = 400


class NoImageProvidedError(InvalidInputError):
    def __init__(self) -> None:
        super().__init__(
            message="No image file provided",
            error_code="NO_IMAGE_PROVIDED",
            details={"suggestion": "Send the image as multipart form field 'image'"},
        )


class EmptyImageError(InvalidInputError):
    def __init__(self, filename: Optional[str] = None) -> None:
        super().__init__(
            message="Uploaded image file is empty",
            error_code="EMPTY_IMAGE",
            details={"filename": filename},
        )


class ImageTooLargeError(InvalidInputError):
    def __init__(self, size: int, max_bytes: int) -> None:
        super().__init__(
            message=f"File must be under {max_bytes // (1024 * 1024)}MB",
            error_code="IMAGE_TOO_LARGE",
            details={"size": size, "max_bytes": max_bytes},
        )


class InvalidUploadError(InvalidInputError):
    """Form data the framework could not bind, e.g. text sent as 'image'."""

    def __init__(self, problems) -> None:
        super().__init__(
            message="Invalid upload: field 'image' must be an image file",
            error_code="INVALID_UPLOAD",
            details={"problems": problems},
        )


class UnsupportedMediaTypeError(InvalidInputError):
    def __init__(self, mime_type: Optional[str], allowed) -> None:
        super().__init__(
            message=f"Unsupported image type: {mime_type or 'unknown'}",
            error_code="UNSUPPORTED_MEDIA_TYPE",
            details={"mime_type": mime_type, "allowed": sorted(allowed)},
        )


# Configuration errors
class MissingCredentialError(OcrError):
    """No API key configured; raised before any network call."""

    def __init__(self, variable: str = "GRAVIXLAYER_API_KEY") -> None:
        super().__init__(
            message=f"{variable} environment variable is not set",
            error_code="MISSING_CREDENTIAL",
            details={"variable": variable},
        )


class ConfigurationError(OcrError):
    """settings.json holds a value of the wrong type."""

    def __init__(self, path: str, reason: Any) -> None:
        super().__init__(
            message=f"Invalid value in {path}: {reason}",
            error_code="INVALID_CONFIGURATION",
            details={"path": path, "reason": str(reason)},
        )


# Upstream errors
class UpstreamAuthError(OcrError):
    status_code = 401

    def __init__(self, upstream_message: Optional[str] = None) -> None:
        super().__init__(
            message="Invalid API key",
            error_code="UPSTREAM_AUTH",
            details={"upstream_status": 401, "upstream_message": upstream_message},
        )


class UpstreamRateLimitError(OcrError):
    status_code = 429

    def __init__(self, upstream_message: Optional[str] = None) -> None:
        super().__init__(
            message="Rate limit exceeded",
            error_code="UPSTREAM_RATE_LIMIT",
            details={"upstream_status": 429, "upstream_message": upstream_message},
        )


class UpstreamError(OcrError):
    """Any other transport or API-level failure of the inference API."""

    def __init__(self, reason: str, upstream_status: Optional[int] = None) -> None:
        status_label = upstream_status if upstream_status is not None else "unknown"
        super().__init__(
            message=f"Gravix Layer API error ({status_label}): {reason}",
            error_code="UPSTREAM_ERROR",
            details={"upstream_status": upstream_status, "upstream_message": reason},
        )


class MalformedUpstreamResponseError(OcrError):
    def __init__(self, reason: str) -> None:
        super().__init__(
            message="Unexpected response structure from Gravix Layer API",
            error_code="MALFORMED_UPSTREAM_RESPONSE",
            details={"reason": reason},
        )


class PreprocessingError(OcrError):
    """Image enhancement failed; callers fall back to the original bytes."""

    def __init__(self, step: str, reason: Any) -> None:
        super().__init__(
            message=f"Image preprocessing failed at '{step}': {reason}",
            error_code="PREPROCESSING_FAILED",
            details={"step": step, "reason": str(reason)},
        )


def handle_error(error: BaseException) -> Dict[str, Any]:
    """Log an error and convert it to the JSON error body.

    Doxygen:
    - @param error: Exception raised while serving a request.
    - @return: Dict with keys {'error', 'error_code', 'details'}.
    """
    if isinstance(error, OcrError):
        logger.error("%s: %s", error.error_code, error.message)
        if error.details:
            logger.debug("Error details: %s", error.details)
        return error.to_dict()

    logger.exception("Unexpected error: %s", error)
    return {
        "error": f"Internal server error: {error}",
        "error_code": "UNEXPECTED_ERROR",
        "details": {
            "error_type": type(error).__name__,
            "error_message": str(error),
        },
    }


def status_code_for(error: BaseException) -> int:
    """HTTP status for any exception; unknown ones are 500."""
    if isinstance(error, OcrError):
        return error.status_code
    return 500
