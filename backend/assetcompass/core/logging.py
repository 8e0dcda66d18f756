"""
Logging configuration for the API process and Celery workers.

Market data and e-mail clients log every request at INFO; they are held
at WARNING so trade and rate events stay readable.
"""

import logging
import sys
from typing import Optional

from assetcompass.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers and the level each one is held at
LIBRARY_LEVELS = {
    "uvicorn": logging.INFO,
    "celery": logging.INFO,
    "sqlalchemy": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "yfinance": logging.WARNING,
    "alpaca": logging.WARNING,
}


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger. ``level`` overrides LOG_LEVEL."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    for name, lib_level in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(lib_level)

    if settings.DB_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
