"""
Logging for the sales assistant: one stdout handler per named logger.
"""
from __future__ import annotations

import logging
import sys

from salesbot.core.config import get_settings

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# httpx logs every request line at INFO, including each chat.postMessage
_QUIET_LOGGERS = ("httpx", "httpcore")


def _quiet_http_clients() -> None:
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    level = getattr(logging, get_settings().log_level.upper(), logging.INFO)
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
        logger.addHandler(handler)
        logger.propagate = False
        _quiet_http_clients()
    logger.setLevel(level)
    return logger
