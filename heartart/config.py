from __future__ import annotations

import logging
import os

from pydantic import BaseModel, ConfigDict, Field

from .errors import MissingApiKeyError
from .keystore import load_api_key

DEFAULT_TEXT_MODEL = "gemini/gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini/imagen-4.0-generate-001"
DEFAULT_TIMEOUT = 120.0
DEFAULT_MAX_POINTS = 60

API_KEY_ENVS = ("HEARTART_API_KEY", "GEMINI_API_KEY")
_LOGGER = logging.getLogger("heartart.config")


def _env_str(name: str, default: str) -> str:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _LOGGER.warning("Ignoring invalid %s=%r; using %s.", name, value, default)
        return default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _LOGGER.warning("Ignoring invalid %s=%r; using %s.", name, value, default)
        return default


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() not in {"0", "false", "no", "off"}


class Settings(BaseModel):
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    max_points: int = Field(default=DEFAULT_MAX_POINTS, gt=0)
    local_fallback: bool = True

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_env(cls) -> "Settings":
        timeout = _env_float("HEARTART_TIMEOUT", DEFAULT_TIMEOUT)
        max_points = _env_int("HEARTART_MAX_POINTS", DEFAULT_MAX_POINTS)
        return cls(
            text_model=_env_str("HEARTART_TEXT_MODEL", DEFAULT_TEXT_MODEL),
            image_model=_env_str("HEARTART_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
            timeout=timeout if timeout > 0 else DEFAULT_TIMEOUT,
            max_points=max_points if max_points > 0 else DEFAULT_MAX_POINTS,
            local_fallback=_env_flag("HEARTART_LOCAL_FALLBACK", True),
        )


def resolve_api_key(explicit: str | None = None) -> str:
    """Explicit key, then environment, then the local key store."""
    if explicit and explicit.strip():
        return explicit.strip()
    for name in API_KEY_ENVS:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    stored = load_api_key()
    if stored:
        return stored
    raise MissingApiKeyError(
        "API Key is not configured. Run `heartart key set <KEY>` or set HEARTART_API_KEY."
    )
