"""Process-wide logging for the API and the job runner."""

import logging
import sys

from automation.core.config import get_settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Per-request chatter from client libraries; raised to WARNING unless debugging.
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def setup_logging() -> None:
    """Configure the root logger on stdout.

    LOG_LEVEL wins when set; otherwise DEBUG if settings.debug, else INFO.
    Safe to call more than once (the API and the job script both call it).
    """
    settings = get_settings()
    level_name = (settings.log_level or ("DEBUG" if settings.debug else "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format=_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    if not settings.debug:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the module logger (pass __name__)."""
    return logging.getLogger(name)
