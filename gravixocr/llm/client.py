"""Client utilities for the Gravix Layer (OpenAI-compatible) inference API.

This module builds a client from settings, packages an image into a
single-turn chat request, and maps SDK failures onto the service error
taxonomy.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List

import openai
from openai import OpenAI

from gravixocr.config import Settings
from gravixocr.errors import (
    MalformedUpstreamResponseError,
    MissingCredentialError,
    OcrError,
    UpstreamAuthError,
    UpstreamError,
    UpstreamRateLimitError,
)

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = (
    "Extract all the text from the image. "
    "Make sure to only return the extracted text and nothing else."
)
NO_TEXT_FALLBACK = "No text could be extracted from the image"


def create_client(settings: Settings) -> OpenAI:
    """Create an OpenAI client configured for Gravix Layer.

    Retries are disabled: each request reaches the upstream API once.

    Doxygen:
    - @param settings: Settings for the current request.
    - @return: Configured `OpenAI` client instance.
    - @throws MissingCredentialError: If no API key is configured.
    """
    if not settings.has_credential:
        raise MissingCredentialError()
    return OpenAI(
        base_url=settings.base_url,
        api_key=settings.api_key,
        timeout=settings.request_timeout,
        max_retries=0,
    )


def build_data_url(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def build_extraction_messages(data_url: str) -> List[Dict[str, Any]]:
    """Return the single user message asking the model to transcribe the image."""
    return [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": EXTRACTION_PROMPT},
                {"type": "image_url", "image_url": {"url": data_url}},
            ],
        }
    ]


def classify_api_error(exc: Exception) -> OcrError:
    """Translate an SDK exception into the service error taxonomy.

    Doxygen:
    - @param exc: Exception raised by the `openai` client.
    - @return: Matching `OcrError` subclass instance.
    """
    if isinstance(exc, openai.AuthenticationError):
        return UpstreamAuthError(exc.message)
    if isinstance(exc, openai.RateLimitError):
        return UpstreamRateLimitError(exc.message)
    if isinstance(exc, openai.APIStatusError):
        return UpstreamError(exc.message, upstream_status=exc.status_code)
    if isinstance(exc, openai.APITimeoutError):
        return UpstreamError("Request to Gravix Layer API timed out")
    if isinstance(exc, openai.APIConnectionError):
        return UpstreamError(f"Network error during API call: {exc}")
    return UpstreamError(f"Network or SDK error during API call: {exc}")


def chat_completion(
    client: OpenAI,
    settings: Settings,
    messages: List[Dict[str, Any]],
    max_tokens: int | None = None,
) -> Any:
    """Send a deterministic, non-streaming chat completion request.

    Doxygen:
    - @param client: Client created by `create_client`.
    - @param settings: Supplies model id, seed and default token cap.
    - @param messages: Chat messages to send.
    - @param max_tokens: Output-length cap; defaults to `settings.max_tokens`.
    - @return: Raw completion object returned by the SDK.
    - @throws OcrError: Classified upstream failure.
    """
    try:
        return client.chat.completions.create(
            model=settings.model,
            messages=messages,
            temperature=0,
            top_p=1,
            seed=settings.seed,
            max_tokens=max_tokens if max_tokens is not None else settings.max_tokens,
            stream=False,
        )
    except openai.OpenAIError as exc:
        error = classify_api_error(exc)
        logger.error("Error during Gravix Layer API call: %s", exc)
        raise error from exc


def extract_completion_text(completion: Any) -> str:
    """Return the first choice's text, or the no-text fallback if it is empty.

    Doxygen:
    - @param completion: Completion object (or any object with the same shape).
    - @return: Extracted text.
    - @throws MalformedUpstreamResponseError: No choices, message or content.
    """
    choices = getattr(completion, "choices", None)
    if not choices:
        raise MalformedUpstreamResponseError("response contains no choices")
    message = getattr(choices[0], "message", None)
    if message is None:
        raise MalformedUpstreamResponseError("first choice has no message")
    content = getattr(message, "content", None)
    if content is None:
        raise MalformedUpstreamResponseError("message has no content")
    if not content.strip():
        return NO_TEXT_FALLBACK
    return content


def request_text_extraction(client: OpenAI, settings: Settings, data_url: str) -> str:
    """Ask the model to transcribe the image at `data_url` and return the text."""
    logger.info("Calling Gravix Layer API with model %s...", settings.model)
    completion = chat_completion(client, settings, build_extraction_messages(data_url))
    logger.info("Successfully received response from Gravix Layer API.")
    return extract_completion_text(completion)


def test_model_health(client: OpenAI, settings: Settings) -> None:
    """Perform a lightweight health check request.

    Doxygen:
    - @param client: OpenAI instance.
    - @param settings: Settings for model id and timeout.
    - @throws OcrError: If the request fails or the response is malformed.
    """
    completion = chat_completion(client, settings, [{"role": "user", "content": "ping"}], max_tokens=1)
    if not getattr(completion, "choices", None):
        raise MalformedUpstreamResponseError("health check response contains no choices")


# not a pytest test despite the name
test_model_health.__test__ = False
