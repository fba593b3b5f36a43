# live_score/logging_config.py
"""
Logging setup for the live score service.

Call ``configure_logging()`` once at process startup (``main.py`` does it in
the FastAPI startup hook). Modules log through ``logging.getLogger(__name__)``
so every line lands under the ``live_score`` logger tree.
"""
from __future__ import annotations

import logging
from typing import Optional

from live_score.config import LOG_LEVEL

DEFAULT_LOGGER_NAME = "live_score"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def _parse_level(value: Optional[str]) -> int:
    """
    Map a string log level (e.g. 'DEBUG', 'info') to a logging constant.
    Unknown or empty values fall back to INFO.
    """
    if not value:
        return logging.INFO
    level = getattr(logging, value.strip().upper(), None)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: Optional[str] = None, *, force: bool = False) -> logging.Logger:
    """
    Attach a single stderr handler to the service logger and return it.

    Repeated calls are no-ops unless ``force`` is True, so the startup hook
    can run more than once (tests create several apps) without duplicating
    handlers.
    """
    global _configured

    logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    if _configured and not force:
        return logger

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(_parse_level(level or LOG_LEVEL))
    logger.propagate = True

    _configured = True
    return logger
