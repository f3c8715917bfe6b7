"""Logging setup for the service."""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "LOG_LEVEL"

_HANDLER_NAME = "ogckit"
_FORMAT = "%(asctime)s %(levelname)8s %(name)s\n    %(message)s"
_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "off": logging.CRITICAL + 10,
}


def init(level: str | int | None = None) -> int:
    """Configure the root logger and return the level it logs at.

    Without ``level`` the ``LOG_LEVEL`` environment variable is read; the
    default is ``error``.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "error")
    if isinstance(level, int):
        value = level
    else:
        try:
            value = _LEVELS[level.strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown log level `{level}`") from None

    root = logging.getLogger()
    for handler in [h for h in root.handlers if h.name == _HANDLER_NAME]:
        root.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    root.setLevel(value)
    return value