# === FILE: site_lens/logger.py ===
"""Logging for **SiteLens**.

Every module logs through the one ``"SiteLens"`` logger::

    from site_lens.logger import logger
    logger.info("Visiting: %s", url)

Importing this module attaches no output; the CLI calls :func:`init_logging`
once per invocation to send records to stdout and, optionally, to a rotating
log file.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Union

LOGGER_NAME: Final[str] = "SiteLens"
DEFAULT_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(message)s"

_MAX_BYTES: Final[int] = 5 * 1024 * 1024
_BACKUPS: Final[int] = 3

logger: logging.Logger = logging.getLogger(LOGGER_NAME)
logger.addHandler(logging.NullHandler())


def init_logging(
    level: Union[int, str] = "INFO",
    log_file: Union[str, Path, None] = None,
    log_format: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Route SiteLens records to stdout (and *log_file* when given) at *level*.

    Handlers from an earlier call are closed and replaced, so repeated CLI
    invocations in one process do not duplicate output.
    """
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_format)
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(str(log_file), maxBytes=_MAX_BYTES, backupCount=_BACKUPS, encoding="utf-8")
        rotating.setFormatter(formatter)
        logger.addHandler(rotating)

    logger.setLevel(level)
    logger.propagate = False
    return logger


__all__ = ["logger", "init_logging", "LOGGER_NAME", "DEFAULT_FORMAT"]
