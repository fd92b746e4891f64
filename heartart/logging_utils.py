from __future__ import annotations

import logging
import os
import platform
import traceback
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

APP_NAME = "heartart"
LOG_DIR_ENV = "HEARTART_LOG_DIR"
LOG_FILE = "heartart.log"
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_LOGGER = logging.getLogger("heartart.logging")


def default_log_dir() -> Path:
    env_dir = os.environ.get(LOG_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser()
    if platform.system() == "Darwin":
        return Path.home() / "Library" / "Logs" / APP_NAME
    return Path.home() / f".{APP_NAME}" / "logs"


def log_path(filename: str = LOG_FILE, log_dir: str | None = None) -> Path:
    base_dir = Path(log_dir) if log_dir else default_log_dir()
    return base_dir / filename


def setup_file_logger(
    name: str = APP_NAME,
    filename: str = LOG_FILE,
    *,
    level: int = logging.INFO,
    log_dir: str | None = None,
) -> Path:
    logger = logging.getLogger(name)
    path = log_path(filename, log_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    if any(isinstance(handler, logging.FileHandler) for handler in logger.handlers):
        return path
    logger.setLevel(level)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    return path


def configure_logging(level: int = logging.WARNING) -> None:
    """Attach a Rich stderr handler to the package logger once."""
    logger = logging.getLogger(APP_NAME)
    if any(isinstance(handler, RichHandler) for handler in logger.handlers):
        return
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    handler.setLevel(level)
    logger.addHandler(handler)


def log_exception(context: str, exc: BaseException) -> Path | None:
    try:
        path = log_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().isoformat()
        with path.open("a", encoding="utf-8") as handle:
            handle.write(f"[{timestamp}] {context} failed: {type(exc).__name__}: {exc}\n")
            traceback.print_exception(type(exc), exc, exc.__traceback__, file=handle)
            handle.write("\n")
        return path
    except Exception as log_exc:
        _LOGGER.warning("Failed to write log file: %s", log_exc, exc_info=True)
        return None
