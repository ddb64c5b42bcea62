# app/core/logger.py
"""
Centralised logging configuration for the entire application.
Logs to console and, when LOG_DIR is set, to a rotating file.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from app.core.config import settings

LOG_LEVEL = settings.LOG_LEVEL.upper()

_configured = False


def _configure_root_logger():
    global _configured
    if _configured:
        return
    _configured = True

    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setLevel(LOG_LEVEL)
    console.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    root.addHandler(console)

    if settings.LOG_DIR:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        # Keeps last 10 × 5MB log files
        file_handler = RotatingFileHandler(
            filename=os.path.join(settings.LOG_DIR, "triptrac.log"),
            maxBytes=5 * 1024 * 1024,
            backupCount=10,
            encoding="utf-8",
        )
        file_handler.setLevel(LOG_LEVEL)
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Call this at the top of every module."""
    _configure_root_logger()
    return logging.getLogger(name)
