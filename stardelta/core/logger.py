from __future__ import annotations

import logging
import os
import sys

_FORMAT = "%(levelname)s %(name)s: %(message)s"
_configured = False


def _configure() -> None:
    global _configured
    if _configured:
        return
    root = logging.getLogger("stardelta")
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
    level = os.environ.get("STARDELTA_LOG_LEVEL", "INFO").upper()
    root.setLevel(getattr(logging, level, logging.INFO))
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``stardelta`` hierarchy."""
    _configure()
    return logging.getLogger(name)


def set_verbose(verbose: bool) -> None:
    _configure()
    logging.getLogger("stardelta").setLevel(logging.DEBUG if verbose else logging.INFO)
