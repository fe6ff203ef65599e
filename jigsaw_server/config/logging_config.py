"""Shared logging configuration for Jigsaw Server.

Call ``configure_logging()`` once at a CLI entry point. If the root logger
already has handlers it does nothing.
"""

import logging
from typing import Optional

from .settings import settings


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger with a console handler using settings format."""
    root = logging.getLogger()
    if root.handlers:
        return

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(settings.LOG_FORMAT))
    root.addHandler(console)

    root.setLevel((level or settings.LOG_LEVEL).upper())
