"""FastAPI application exposing the OCR pipeline over HTTP."""

from .app import app, get_client_factory, get_settings_loader

__all__ = [
    "app",
    "get_client_factory",
    "get_settings_loader",
]
