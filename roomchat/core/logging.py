# roomchat/core/logging.py

import logging
import sys

from roomchat.core.config import settings

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers held at WARNING unless LOG_LEVEL is stricter
QUIET_LOGGERS = ("redis", "uvicorn.access", "asyncio")


def setup_logging(level_name: str | None = None) -> None:
    """
    Send application logs to stdout at LOG_LEVEL (default INFO).

    Uvicorn installs its own handlers before importing the app; in that case
    only the levels are adjusted.
    """
    level = getattr(logging, (level_name or settings.LOG_LEVEL).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
