"""Local storage for the hosted-model API key."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .errors import MissingApiKeyError

CONFIG_DIR_ENV = "HEARTART_CONFIG_DIR"
KEY_FILE = "api-key"
_LOGGER = logging.getLogger("heartart.keystore")


def default_config_dir() -> Path:
    configured = os.environ.get(CONFIG_DIR_ENV)
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".heartart"


def default_key_path() -> Path:
    return default_config_dir() / KEY_FILE


def save_api_key(key: str, path: Path | None = None) -> Path:
    key = key.strip()
    if not key:
        raise MissingApiKeyError("Refusing to store an empty API key.")
    target = path or default_key_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(key + "\n")
    os.chmod(target, 0o600)
    _LOGGER.info("Stored API key at %s", target)
    return target


def load_api_key(path: Path | None = None) -> str | None:
    target = path or default_key_path()
    try:
        key = target.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    return key or None


def clear_api_key(path: Path | None = None) -> bool:
    target = path or default_key_path()
    try:
        target.unlink()
    except FileNotFoundError:
        return False
    _LOGGER.info("Removed API key at %s", target)
    return True


def mask_key(key: str) -> str:
    if len(key) <= 4:
        return "*" * len(key)
    return "*" * (len(key) - 4) + key[-4:]
