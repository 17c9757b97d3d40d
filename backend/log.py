"""Logging setup shared by the API server and the CLI.

Every module logs through ``logging.getLogger(__name__)``; this module only
attaches a single stream handler to the ``backend`` package logger so that
repeated calls (app reloads, multiple CLI invocations in one test session)
never stack duplicate handlers.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, Union

from backend.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_ROOT_LOGGER = "backend"


def configure_logging(level: Optional[Union[int, str]] = None) -> logging.Logger:
    """(Re)configure the ``backend`` logger and return it.

    Args:
        level: Numeric or textual level.  Defaults to ``settings.log_level``.
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    resolved = level if level is not None else settings.log_level
    if isinstance(resolved, str):
        resolved = resolved.upper()
    logger.setLevel(resolved)

    logger.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
