"""
Entry point and public facade for the image → preprocess → text pipeline.

Packages:
- gravixocr.image: Image preprocessing (grayscale, contrast, upscale, sharpen, gamma)
- gravixocr.llm: Gravix Layer client helpers, extraction request and error mapping
- gravixocr.pipeline: Per-request orchestration (`extract_text`)
- gravixocr.api: FastAPI application (`POST /api/ocr`)
"""

from __future__ import annotations

import logging
import os
from typing import Optional

# Configuration
from gravixocr.config import CONFIG_PATH, Settings, load_settings

# Errors
from gravixocr.errors import OcrError, InvalidInputError

# Preprocessing
from gravixocr.image import process_image_for_ocr, preprocess_image_bytes

# Inference API helpers
from gravixocr.llm import (
    create_client,
    build_data_url,
    request_text_extraction,
    test_model_health,
)

# High-level pipeline
from gravixocr.model import ExtractionResult, ImageBuffer
from gravixocr.pipeline import extract_text, guess_mime_type

__all__ = [
    # config
    "CONFIG_PATH",
    "Settings",
    "load_settings",
    # errors
    "OcrError",
    "InvalidInputError",
    # preprocessing
    "process_image_for_ocr",
    "preprocess_image_bytes",
    # client
    "create_client",
    "build_data_url",
    "request_text_extraction",
    "test_model_health",
    # pipeline
    "ExtractionResult",
    "ImageBuffer",
    "extract_text",
    "extract_text_from_file",
]

logger = logging.getLogger(__name__)


def extract_text_from_file(
    image_path: str,
    settings: Optional[Settings] = None,
    mime_type: Optional[str] = None,
    preprocess: bool = True,
    client_factory=create_client,
) -> ExtractionResult:
    """Run the extraction pipeline on an image file from disk.

    - image_path: path to a PNG, JPEG or WebP file
    - settings: defaults to `load_settings()`
    - mime_type: overrides the type guessed from the file extension
    - preprocess: False sends the original bytes unchanged
    - client_factory: builds the API client (defaults to `create_client`)
    """
    if not os.path.exists(image_path):
        raise FileNotFoundError(f"Image file not found: {image_path}")
    with open(image_path, "rb") as f:
        data = f.read()
    image = ImageBuffer(
        data=data,
        mime_type=mime_type or guess_mime_type(image_path) or "",
        filename=os.path.basename(image_path),
    )
    return extract_text(
        image,
        settings or load_settings(),
        client_factory=client_factory,
        preprocess=preprocess,
    )


def _cli() -> None:
    """CLI for text extraction, the HTTP server, and an upstream health check.

    Extraction mode:
    --image / -i: Path to input image (png|jpg|jpeg|webp)
    --mime: Override the MIME type guessed from the extension
    --no-preprocess: Send the original image without enhancement
    --timeout: Request timeout seconds (<=0 means no timeout)

    Server mode:
    --serve: Run the HTTP API with uvicorn
    --host / --port: Bind address (default: 127.0.0.1:8000)

    --check: Send a minimal request to verify the API key and model
    """
    import argparse

    from dotenv import load_dotenv

    parser = argparse.ArgumentParser(description="Extract text from an image using the Gravix Layer vision model.")
    # extraction mode
    parser.add_argument("--image", "-i", type=str, help="Path to input image to extract text from")
    parser.add_argument("--mime", type=str, help="MIME type of the image (default: guessed from extension)")
    parser.add_argument("--no-preprocess", action="store_true", help="Skip image enhancement before sending")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds (default: from config/settings.json; set 0 or negative for no timeout)")
    # server mode
    parser.add_argument("--serve", action="store_true", help="Run the HTTP API server")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Server bind host (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Server bind port (default: 8000)")
    # health check
    parser.add_argument("--check", action="store_true", help="Check API key and model availability")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Pick up GRAVIXLAYER_API_KEY from a local .env file
    load_dotenv()

    if args.serve:
        import uvicorn

        uvicorn.run("gravixocr.api.app:app", host=args.host, port=args.port)
        return

    try:
        settings = load_settings()
    except OcrError as e:
        print(f"Configuration error [{e.error_code}]: {e.message}")
        raise SystemExit(1)
    if args.timeout is not None:
        settings = settings.with_overrides(request_timeout=None if args.timeout <= 0 else args.timeout)

    if args.check:
        try:
            with create_client(settings) as client:
                test_model_health(client, settings)
        except OcrError as e:
            print(f"Health check failed [{e.error_code}]: {e.message}")
            raise SystemExit(1)
        print(f"Model {settings.model} is reachable at {settings.base_url}")
        return

    if not args.image:
        print("Please provide --image path, --serve or --check.")
        print("Examples:\n  python main.py --image scan.png\n  python main.py --serve --port 8000")
        raise SystemExit(2)

    try:
        result = extract_text_from_file(
            args.image,
            settings=settings,
            mime_type=args.mime,
            preprocess=not args.no_preprocess,
        )
    except FileNotFoundError as e:
        print(str(e))
        raise SystemExit(2)
    except InvalidInputError as e:
        print(f"Invalid input [{e.error_code}]: {e.message}")
        raise SystemExit(2)
    except OcrError as e:
        print(f"Extraction failed [{e.error_code}]: {e.message}")
        raise SystemExit(1)

    print(result.text)


if __name__ == "__main__":
    _cli()
