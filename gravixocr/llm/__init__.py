"""Inference API integration.

Provides the OpenAI-compatible client factory, request construction for
text extraction, and response/error handling.
"""

from .client import (
    EXTRACTION_PROMPT,
    NO_TEXT_FALLBACK,
    build_data_url,
    build_extraction_messages,
    chat_completion,
    classify_api_error,
    create_client,
    extract_completion_text,
    request_text_extraction,
    test_model_health,
)

__all__ = [
    "EXTRACTION_PROMPT",
    "NO_TEXT_FALLBACK",
    "build_data_url",
    "build_extraction_messages",
    "chat_completion",
    "classify_api_error",
    "create_client",
    "extract_completion_text",
    "request_text_extraction",
    "test_model_health",
]
