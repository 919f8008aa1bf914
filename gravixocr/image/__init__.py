"""Image preprocessing (grayscale, contrast, upscale, sharpen, gamma, PNG)."""

from .processing import (
    apply_gamma,
    compute_upscale_size,
    normalize_contrast,
    preprocess_image_bytes,
    process_image_for_ocr,
    read_image_metadata,
    unsharp_mask,
)

__all__ = [
    "apply_gamma",
    "compute_upscale_size",
    "normalize_contrast",
    "preprocess_image_bytes",
    "process_image_for_ocr",
    "read_image_metadata",
    "unsharp_mask",
]
