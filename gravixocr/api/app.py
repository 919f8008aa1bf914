"""
HTTP API for the OCR service.

Provides:
- POST /api/ocr: multipart upload (field ``image``) → ``{"text": ...}``
- GET /health: liveness check (never calls the inference API)
"""
from __future__ import annotations

import logging
import os
from typing import Callable, Optional

from fastapi import Depends, FastAPI, File, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gravixocr.config import Settings, load_settings
from gravixocr.errors import InvalidUploadError, handle_error, status_code_for
from gravixocr.llm import create_client
from gravixocr.model import ImageBuffer
from gravixocr.pipeline import extract_text
from gravixocr.pipeline.process import ClientFactory

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

APP_NAME = "GravixOCR"
API_VERSION = "v1"

app = FastAPI(
    title=APP_NAME,
    description="Extract text from images with a hosted multimodal model.",
    version=API_VERSION,
)


def get_settings_loader() -> Callable[[], Settings]:
    """Settings are read per request, inside the handler, so a bad
    settings.json is reported like any other error."""
    return load_settings


def get_client_factory() -> ClientFactory:
    return create_client


def _upload_size(upload: UploadFile, received: int) -> int:
    if upload.size is not None:
        return upload.size
    # no size from the parser: measure the spooled file
    upload.file.seek(0, os.SEEK_END)
    return max(received, upload.file.tell())


def _read_upload(upload: Optional[UploadFile], max_bytes: int) -> Optional[ImageBuffer]:
    if upload is None:
        return None
    # one byte past the limit is enough to reject oversized files
    data = upload.file.read(max_bytes + 1)
    declared_size = _upload_size(upload, len(data)) if len(data) > max_bytes else None
    return ImageBuffer(
        data=data,
        mime_type=upload.content_type or "",
        filename=upload.filename,
        declared_size=declared_size,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Unbindable form data (e.g. text in the 'image' field) is a 400."""
    problems = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": str(err.get("msg", ""))}
        for err in exc.errors()
    ]
    error = InvalidUploadError(problems)
    return JSONResponse(status_code=error.status_code, content=handle_error(error))


@app.get("/health", status_code=status.HTTP_200_OK)
def health_check():
    return {"status": "ok", "service": APP_NAME}


@app.post("/api/ocr")
def ocr(
    image: Optional[UploadFile] = File(None),
    settings_loader: Callable[[], Settings] = Depends(get_settings_loader),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    """Extract the text of one uploaded image.

    Errors are returned as ``{"error", "error_code", "details"}`` with the
    status code of the matching error class.
    """
    logger.info("--- OCR API Route Started ---")
    try:
        settings = settings_loader()
        buffer = _read_upload(image, settings.max_upload_bytes)
        result = extract_text(buffer, settings, client_factory=client_factory)
    except Exception as e:
        logger.error("--- OCR API Route Failed ---")
        return JSONResponse(status_code=status_code_for(e), content=handle_error(e))
    finally:
        if image is not None:
            image.file.close()

    logger.info("--- OCR API Route Finished Successfully ---")
    return result.to_dict()
