"""Logging configuration for mnemo.

Library modules log through ``logging.getLogger(__name__)`` and never print.
The CLI decides where records go: a persistent operations log under the home
directory, plus stderr when ``--verbose`` is given.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

_LOG_FILE_NAME = "mnemo.log"

# Third-party loggers that are noisy at INFO.
_CHATTY_LOGGERS = ("LiteLLM", "litellm", "httpx", "watchdog")


def configure_quiet_mode() -> None:
    """Silence verbose third-party library output."""
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def enable_debug_mode() -> None:
    """Enable debug-level logging of the ``mnemo`` logger to stderr."""
    logger = logging.getLogger("mnemo")
    logger.setLevel(logging.DEBUG)

    if not any(
        isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
        for h in logger.handlers
    ):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        ))
        logger.addHandler(handler)


def configure_ops_log(home: Path | str) -> logging.Handler:
    """Attach a persistent operations log to the ``mnemo`` logger.

    Writes to ``{home}/mnemo.log`` using a rotating file handler (1MB max,
    3 backups). Returns the handler so it can be removed on close.
    """
    log_path = Path(home) / _LOG_FILE_NAME
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    logger = logging.getLogger("mnemo")
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)

    return handler
