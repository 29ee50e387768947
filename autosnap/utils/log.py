"""Logging setup for autosnap entry points."""

from __future__ import annotations

import logging
import sys

from .env import is_debug_mode


LOG_FORMAT = "[autosnap] %(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool | None = None) -> None:
    """Send autosnap log records to stderr.

    Args:
        debug: Force debug level; defaults to AUTOSNAP_DEBUG
    """
    if debug is None:
        debug = is_debug_mode()

    logger = logging.getLogger("autosnap")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    if not any(getattr(h, "_autosnap", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._autosnap = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
