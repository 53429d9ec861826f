"""
Logging configuration shared by the API and CLI entry points.

Engine modules log through ``logging.getLogger(__name__)``; entry points call
``setup_logging()`` once so those records reach the console.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(level: Optional[str] = None) -> None:
    """Install a console handler on the root logger (idempotent)."""
    global _configured
    if _configured:
        return

    if level is None:
        from config.settings import settings
        level = settings.log_level

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level.upper())

    # SQLAlchemy echoes every statement at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger, configuring logging on first use."""
    setup_logging()
    return logging.getLogger(name)
