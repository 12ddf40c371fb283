"""Logging configuration."""
import logging
import sys

from kampus.core.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging() -> None:
    settings = get_settings()
    root = logging.getLogger()
    # uvicorn and pytest install their own handlers; only add ours once.
    if not any(getattr(handler, "_kampus", False) for handler in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._kampus = True
        root.addHandler(handler)
    logging.getLogger("kampus").setLevel(settings.log_level)
