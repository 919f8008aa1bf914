"""Image enhancement pipeline applied before text extraction.

Decoding and metadata use Pillow; the filters operate on numpy grayscale
arrays using OpenCV. The pipeline always re-encodes to lossless PNG.
"""

from __future__ import annotations

import io
import logging
from typing import Any, Callable, Dict, Optional, Tuple

import cv2
import numpy as np
from PIL import Image

from gravixocr.errors import PreprocessingError
from gravixocr.model import PNG_MIME, ImageBuffer, ProcessedImageBuffer

logger = logging.getLogger(__name__)

MIN_LONG_SIDE = 1000
NORMALIZE_LOW_PCT = 1.0
NORMALIZE_HIGH_PCT = 99.0
SHARPEN_SIGMA = 1.0
SHARPEN_AMOUNT = 1.0
GAMMA = 1.2


def read_image_metadata(data: bytes) -> Dict[str, Any]:
    """Return width, height and format of an encoded image.

    Doxygen:
    - @param data: Encoded image bytes (PNG, JPEG, WebP, ...).
    - @return: Dict with keys {'width', 'height', 'format'}.
    - @throws PIL.UnidentifiedImageError: If the bytes are not an image.
    """
    with Image.open(io.BytesIO(data)) as img:
        return {"width": img.width, "height": img.height, "format": img.format}


def decode_grayscale(data: bytes) -> np.ndarray:
    """Decode image bytes into a single-channel uint8 array.

    Transparent pixels are composited on white so text on a transparent
    background keeps its contrast.

    Doxygen:
    - @param data: Encoded image bytes.
    - @return: 2-D uint8 grayscale array.
    """
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        if img.mode in ("RGBA", "LA", "P", "PA") or "transparency" in img.info:
            rgba = img.convert("RGBA")
            background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
            img = Image.alpha_composite(background, rgba)
        gray = img.convert("L")
    return np.asarray(gray, dtype=np.uint8).copy()


def normalize_contrast(gray: np.ndarray, low_pct: float = NORMALIZE_LOW_PCT,
                       high_pct: float = NORMALIZE_HIGH_PCT) -> np.ndarray:
    """Stretch intensities between two percentiles to the full 0..255 range.

    Values outside the percentile window are clipped, so a few stray black
    or white pixels do not cancel the stretch for the rest of the page.

    Doxygen:
    - @param gray: Grayscale uint8 array.
    - @param low_pct: Percentile mapped to 0.
    - @param high_pct: Percentile mapped to 255.
    - @return: Stretched uint8 array.
    """
    lo, hi = np.percentile(gray, [low_pct, high_pct])
    if hi <= lo:
        lo, hi = float(gray.min()), float(gray.max())
    if hi <= lo:
        # uniform image, nothing to stretch
        return gray.copy()
    stretched = (gray.astype(np.float32) - lo) * (255.0 / (hi - lo))
    return np.clip(np.rint(stretched), 0, 255).astype(np.uint8)


def compute_upscale_size(width: int, height: int, min_long_side: int = MIN_LONG_SIDE) -> Optional[Tuple[int, int]]:
    """Return the (width, height) to upscale to, or None to keep the size.

    The longer side becomes exactly ``min_long_side``; images whose longer
    side already reaches it are never resized.
    """
    longest = max(width, height)
    if longest <= 0 or longest >= min_long_side:
        return None
    scale = min_long_side / float(longest)
    if width >= height:
        return min_long_side, max(1, int(round(height * scale)))
    return max(1, int(round(width * scale))), min_long_side


def upscale_if_small(gray: np.ndarray, min_long_side: int = MIN_LONG_SIDE) -> np.ndarray:
    """Upscale with Lanczos resampling when the longer side is too short.

    Doxygen:
    - @param gray: Grayscale image array.
    - @param min_long_side: Target length of the longer side in pixels.
    - @return: Resized array, or the input array when no resize is needed.
    """
    height, width = gray.shape[:2]
    target = compute_upscale_size(width, height, min_long_side)
    if target is None:
        return gray
    logger.info("Upscaled image by factor %.2f", min_long_side / float(max(width, height)))
    return cv2.resize(gray, target, interpolation=cv2.INTER_LANCZOS4)


def unsharp_mask(gray: np.ndarray, sigma: float = SHARPEN_SIGMA, amount: float = SHARPEN_AMOUNT) -> np.ndarray:
    """Increase edge contrast: original + amount * (original - blurred)."""
    blurred = cv2.GaussianBlur(gray, (0, 0), sigma)
    return cv2.addWeighted(gray, 1.0 + amount, blurred, -amount, 0)


def apply_gamma(gray: np.ndarray, gamma: float = GAMMA) -> np.ndarray:
    """Apply gamma correction through a 256-entry lookup table."""
    levels = np.arange(256, dtype=np.float64) / 255.0
    lut = np.clip(np.power(levels, gamma) * 255.0 + 0.5, 0, 255).astype(np.uint8)
    return cv2.LUT(gray, lut)


def encode_png(gray: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", gray, [cv2.IMWRITE_PNG_COMPRESSION, 0])
    if not ok:
        raise ValueError("cv2.imencode returned no data")
    return buf.tobytes()


def _run_step(step: str, func: Callable[..., Any], *args: Any) -> Any:
    try:
        return func(*args)
    except Exception as exc:
        raise PreprocessingError(step, exc) from exc


def preprocess_image_bytes(data: bytes) -> Tuple[bytes, int, int]:
    """Run the full enhancement pipeline without any fallback.

    Doxygen:
    - @param data: Encoded input image bytes.
    - @return: (png_bytes, width, height) of the processed image.
    - @throws PreprocessingError: If any step fails.
    """
    meta = _run_step("metadata", read_image_metadata, data)
    logger.info(
        "Original image - Width: %s, Height: %s, Format: %s",
        meta["width"], meta["height"], meta["format"],
    )
    img = _run_step("grayscale", decode_grayscale, data)
    img = _run_step("normalize", normalize_contrast, img)
    img = _run_step("upscale", upscale_if_small, img)
    img = _run_step("sharpen", unsharp_mask, img)
    img = _run_step("gamma", apply_gamma, img)
    png = _run_step("encode", encode_png, img)
    height, width = img.shape[:2]
    return png, width, height


def process_image_for_ocr(image: ImageBuffer) -> ProcessedImageBuffer:
    """Enhance an uploaded image for text recognition.

    Never raises for bad image data: on failure the original bytes are
    returned unchanged (with their original MIME type) and the cause is
    logged.

    Doxygen:
    - @param image: Uploaded image buffer.
    - @return: Processed PNG buffer, or the original bytes flagged as fallback.
    """
    logger.info("Starting image preprocessing for OCR optimization...")
    try:
        png, width, height = preprocess_image_bytes(image.data)
    except PreprocessingError as exc:
        logger.warning("%s; falling back to original image", exc.message, exc_info=True)
        return ProcessedImageBuffer(data=image.data, mime_type=image.mime_type, fallback=True)

    logger.info(
        "Image preprocessing completed. Original size: %d bytes, Processed size: %d bytes",
        image.size, len(png),
    )
    return ProcessedImageBuffer(data=png, mime_type=PNG_MIME, width=width, height=height)
