"""Logging setup: console handler at the configured level plus an optional debug log file."""

import logging
import sys
from pathlib import Path

from ocrchat.core.config import Settings, get_config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers; kept at WARNING so DEBUG runs stay readable.
_NOISY_LOGGERS = ("urllib3", "PIL", "httpx", "multipart")


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure application logging.

    Invariants:
    - The root logger is set to DEBUG so that all records reach handlers.
    - Console handler (stderr) logs at settings.log_level, so stdout stays clean for command output.
    - When settings.log_file is set, a file handler captures all levels at DEBUG.
    - Calling again replaces the handlers instead of duplicating them.
    """
    cfg = settings or get_config()
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in root.handlers[:]:
        root.removeHandler(h)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(_parse_level(cfg.log_level))
    console.setFormatter(formatter)
    root.addHandler(console)

    if cfg.log_file:
        path = Path(cfg.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _parse_level(level: str) -> int:
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO
