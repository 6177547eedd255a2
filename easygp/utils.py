"""
Shared utilities.
"""
import logging
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_ROOT_LOGGER_NAME = "easygp"


def get_logger(name: str) -> logging.Logger:
    """Get a module logger under the package namespace."""
    return logging.getLogger(name)


def configure_logging(level: Union[str, int] = "INFO", fmt: Optional[str] = None) -> logging.Logger:
    """
    Attach a single stream handler to the package logger.

    Safe to call repeatedly; only the level is updated on later calls.
    """
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    if isinstance(level, str):
        level = level.upper()
    root.setLevel(level)

    if not any(getattr(h, "_easygp_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt or LOG_FORMAT))
        handler._easygp_handler = True
        root.addHandler(handler)

    return root
