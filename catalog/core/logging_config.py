"""Utilities to configure stdlib logging from environment settings."""

from __future__ import annotations

import logging

from catalog.core.config import get_settings


def configure_logging() -> None:
    """Apply the configured log level to the root logger."""

    settings = get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level)
    # httpx logs every request URL at INFO, which would leak query strings
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
