"""Logging setup shared by the HTTP app, the realtime relay and the CLI scripts."""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NOISY_LOGGERS = ("asyncio", "httpx", "httpcore", "websockets", "uvicorn.access")


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure the root logger.

    Safe to call more than once: existing root handlers are replaced, so the
    app module and the entrypoint can both call it without duplicating output.

    Args:
        log_level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                   Unknown names fall back to INFO.
        log_file: Optional path; when set, records are also appended there.
    """
    level = getattr(logging, str(log_level).upper(), None)
    if not isinstance(level, int):
        level = logging.INFO

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = []
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; output goes through whatever setup_logging() installed."""
    return logging.getLogger(name)
