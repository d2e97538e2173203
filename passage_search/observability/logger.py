"""Logging setup for the engine.

All engine loggers live under the ``passage_search`` namespace; a single
stderr handler is attached to that root so child loggers propagate to it.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional

ROOT_LOGGER_NAME = "passage_search"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _ensure_root_handler() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.propagate = False
    if root.level == logging.NOTSET:
        root.setLevel(logging.INFO)
    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
        root.addHandler(handler)
    return root


def get_logger(name: str = ROOT_LOGGER_NAME, level: Optional[str] = None) -> logging.Logger:
    """Create (or return) a logger inside the engine namespace.

    Args:
        name: Logger name. Names outside ``passage_search`` are nested under it.
        level: Optional log level string (e.g. "DEBUG"). If omitted, keeps existing.

    Returns:
        Logger whose records reach the shared stderr handler.
    """

    _ensure_root_handler()
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level.upper())
    return logger


def configure_logging(settings: Any) -> logging.Logger:
    """Apply ``settings.observability.log_level`` to the engine root logger."""

    root = _ensure_root_handler()
    observability = getattr(settings, "observability", None)
    level = getattr(observability, "log_level", None)
    if isinstance(level, str) and level.strip():
        root.setLevel(level.strip().upper())
    return root
