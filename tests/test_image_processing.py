import io

import numpy as np
from PIL import Image

from gravixocr.image import processing
from gravixocr.image.processing import (
    apply_gamma,
    compute_upscale_size,
    decode_grayscale,
    normalize_contrast,
    process_image_for_ocr,
    read_image_metadata,
    unsharp_mask,
)
from gravixocr.model import ImageBuffer


def _open(data):
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


def test_read_image_metadata(make_image):
    meta = read_image_metadata(make_image(320, 240, fmt="JPEG"))
    assert meta == {"width": 320, "height": 240, "format": "JPEG"}


def test_compute_upscale_size_landscape_and_portrait():
    assert compute_upscale_size(500, 250) == (1000, 500)
    assert compute_upscale_size(300, 900) == (333, 1000)


def test_compute_upscale_size_never_resizes_large_images():
    # exactly 1000 on the longer side is the boundary
    assert compute_upscale_size(1000, 600) is None
    assert compute_upscale_size(600, 1000) is None
    assert compute_upscale_size(1500, 20) is None


def test_compute_upscale_size_keeps_thin_side_positive():
    assert compute_upscale_size(999, 1) == (1000, 1)


def test_process_small_image_upscales_to_1000_grayscale_png(make_image):
    out = process_image_for_ocr(ImageBuffer(make_image(200, 100), "image/png"))
    assert not out.fallback
    assert out.mime_type == "image/png"
    img = _open(out.data)
    assert img.format == "PNG"
    assert img.mode == "L"
    assert img.size == (1000, 500)
    assert (out.width, out.height) == (1000, 500)


def test_process_image_at_boundary_keeps_dimensions(make_image):
    out = process_image_for_ocr(ImageBuffer(make_image(1000, 600), "image/png"))
    assert _open(out.data).size == (1000, 600)


def test_process_large_image_keeps_dimensions(make_image):
    out = process_image_for_ocr(ImageBuffer(make_image(1200, 1400, fmt="JPEG"), "image/jpeg"))
    img = _open(out.data)
    assert img.size == (1200, 1400)
    assert img.format == "PNG"


def test_process_webp_is_reencoded_as_png(make_image):
    out = process_image_for_ocr(ImageBuffer(make_image(400, 300, fmt="WEBP"), "image/webp"))
    assert not out.fallback
    assert _open(out.data).format == "PNG"


def test_corrupt_image_falls_back_to_original_bytes():
    data = b"definitely not an image"
    out = process_image_for_ocr(ImageBuffer(data, "image/jpeg"))
    assert out.fallback
    assert out.data == data
    assert out.mime_type == "image/jpeg"


def test_filter_failure_returns_decodable_original(make_image, monkeypatch):
    original = make_image(300, 200, fmt="JPEG")

    def broken(_img):
        raise RuntimeError("sharpen exploded")

    monkeypatch.setattr(processing, "unsharp_mask", broken)
    out = process_image_for_ocr(ImageBuffer(original, "image/jpeg"))
    assert out.fallback
    assert out.data == original
    assert _open(out.data).size == (300, 200)


def test_decode_grayscale_flattens_transparency_on_white():
    img = Image.new("RGBA", (40, 40), (0, 0, 0, 0))
    img.paste((0, 0, 0, 255), (10, 10, 20, 20))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    gray = decode_grayscale(buf.getvalue())
    assert gray.ndim == 2
    assert gray[0, 0] == 255
    assert gray[15, 15] == 0


def test_normalize_contrast_stretches_range():
    gray = np.linspace(100, 150, 64, dtype=np.uint8).reshape(8, 8)
    out = normalize_contrast(gray)
    assert out.min() == 0
    assert out.max() == 255


def test_normalize_contrast_ignores_stray_extreme_pixels():
    gray = np.full((100, 100), 120, dtype=np.uint8)
    gray[50:, :] = 140
    gray[0, 0] = 0
    gray[0, 1] = 255
    out = normalize_contrast(gray)
    assert (out[1:50, :] == 0).all()
    assert (out[50:, :] == 255).all()
    assert out[0, 0] == 0
    assert out[0, 1] == 255


def test_normalize_contrast_leaves_uniform_image():
    gray = np.full((10, 10), 77, dtype=np.uint8)
    assert (normalize_contrast(gray) == 77).all()


def test_unsharp_mask_increases_edge_contrast():
    gray = np.full((20, 20), 100, dtype=np.uint8)
    gray[:, 10:] = 150
    out = unsharp_mask(gray)
    assert out.shape == gray.shape
    assert out.max() > 150
    assert out.min() < 100


def test_apply_gamma_darkens_midtones_and_keeps_extremes():
    gray = np.array([[0, 128, 255]], dtype=np.uint8)
    out = apply_gamma(gray, 1.2)
    assert out[0, 0] == 0
    assert out[0, 2] == 255
    assert out[0, 1] < 128
