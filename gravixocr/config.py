"""Service configuration loaded from config/settings.json and the environment.

The API key is never stored in code: it is read from ``GRAVIXLAYER_API_KEY``
(or an optional ``api_key`` entry in the JSON file). ``load_settings`` is
cheap and is called once per request so that no process-wide client or
settings singleton exists.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from gravixocr.errors import ConfigurationError

logger = logging.getLogger(__name__)

API_KEY_ENV = "GRAVIXLAYER_API_KEY"

# Path to the JSON configuration file with non-secret settings
CONFIG_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "config", "settings.json")

DEFAULT_BASE_URL = "https://api.gravixlayer.com/v1"
DEFAULT_MODEL = "google/gemma-3-12b-it"
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    request_timeout: Optional[float] = 60.0
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    max_tokens: int = 2048
    seed: int = 0

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def with_overrides(self, **changes: Any) -> "Settings":
        return replace(self, **changes)


def _load_config(path: str) -> Dict[str, Any]:
    """Load the JSON configuration; a missing or invalid file yields {}.

    Doxygen:
    - @param path: Absolute path to the JSON configuration file.
    - @return: Parsed configuration dictionary (possibly empty).
    """
    if not os.path.exists(path):
        logger.warning("settings.json not found at %s, using defaults", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Could not load settings from %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("settings.json must contain a JSON object, got %s", type(data).__name__)
        return {}
    return data


def _timeout_value(raw: Any) -> Optional[float]:
    # <= 0 disables the timeout, like the CLI flag
    if raw is None:
        return None
    value = float(raw)
    return None if value <= 0 else value


def load_settings(path: str = CONFIG_PATH, environ: Optional[Dict[str, str]] = None) -> Settings:
    """Build ``Settings`` from the JSON file and the process environment.

    Doxygen:
    - @param path: Absolute path to the JSON configuration file.
    - @param environ: Mapping used instead of ``os.environ`` (tests).
    - @return: Immutable settings for one request.
    - @throws ConfigurationError: If a numeric field has an invalid value.
    """
    env = os.environ if environ is None else environ
    cfg = _load_config(path)

    api_key = env.get(API_KEY_ENV) or cfg.get("api_key") or None
    try:
        return Settings(
            api_key=api_key,
            base_url=str(cfg.get("base_url") or DEFAULT_BASE_URL),
            model=str(cfg.get("model") or DEFAULT_MODEL),
            request_timeout=_timeout_value(cfg.get("request_timeout", 60.0)),
            max_upload_bytes=int(cfg.get("max_upload_bytes", DEFAULT_MAX_UPLOAD_BYTES)),
            max_tokens=int(cfg.get("max_tokens", 2048)),
            seed=int(cfg.get("seed", 0)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(path, exc) from exc
