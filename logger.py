#!/usr/bin/env python3
"""
Logging configuration for the reservoir telemetry API.
"""
import logging
from typing import Optional

from config import LOG_LEVEL


def setup_logging(log_level: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger with a single console handler.

    Args:
        log_level: Logging level name; defaults to LOG_LEVEL from config

    Returns:
        The configured root logger
    """
    level = getattr(logging, (log_level or LOG_LEVEL).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # Avoid duplicate handlers when uvicorn reloads the app
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return root
