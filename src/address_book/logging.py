"""Logging wrapper for the address book service."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_logger = logging.getLogger("address_book")
_configured = False


def configure(level: str = "INFO") -> None:
    """Send service logs to stderr at ``level``. Safe to call more than once."""
    global _configured
    if not _configured:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        _logger.addHandler(handler)
        _configured = True
    _logger.setLevel(level.upper())


def log_info(msg: str) -> None:
    _logger.info(msg)


def log_warning(msg: str) -> None:
    _logger.warning(msg)


def log_error(msg: str) -> None:
    _logger.error(msg)


def log_debug(msg: str) -> None:
    _logger.debug(msg)
