"""Process-wide logging setup."""
from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | int | None = None) -> logging.Logger:
    """Configure the root logger once and return the application logger."""
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # uvicorn access logs duplicate our request logging
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return logging.getLogger("truthhair")
