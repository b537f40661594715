from __future__ import annotations

import logging

from metrics_gateway.core.config import Settings

PACKAGE_LOGGER = "metrics_gateway"


def configure_logging(settings: Settings) -> logging.Logger:
    """Attach one stream handler to the package logger; safe to call repeatedly."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper())
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(settings.log_format))
        logger.addHandler(handler)
    return logger
