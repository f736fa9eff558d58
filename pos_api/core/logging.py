"""Logging setup shared by the app, the scripts and the store backends."""

from __future__ import annotations

import logging

LOG_PREFIX = "GlobalPOS"
LOG_FORMAT = f"[%(asctime)s] [{LOG_PREFIX}] [%(levelname)s] %(name)s: %(message)s"

_HANDLER_NAME = "pos-api-console"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a single console handler to the ``pos_api`` logger tree."""
    root = logging.getLogger("pos_api")
    root.setLevel(level if isinstance(level, int) else level.upper())
    if not any(getattr(h, "name", "") == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    return root
