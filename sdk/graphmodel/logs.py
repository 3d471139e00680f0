"""
Logging setup for applications using graphmodel.

Library modules only create loggers; applications call setup_logging()
once at startup to install a handler.
"""

from __future__ import annotations

import logging
from typing import Optional

import json_log_formatter

from .config import Settings


def setup_logging(settings: Optional[Settings] = None) -> logging.Handler:
    """Configure root logging based on configuration.

    Args:
        settings: Configuration, read from the environment if omitted

    Returns:
        The installed handler
    """
    settings = settings or Settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    return handler
