# src/duckport/logging.py
"""
Logging helpers for duckport.

Every module gets its logger through `get_logger(__name__)` so that all
output hangs off the single "duckport" root logger and can be tuned with
one environment variable:

  DUCKPORT_LOG_LEVEL   DEBUG | INFO | WARNING (default) | ERROR
  DUCKPORT_DEBUG       any truthy value forces DEBUG
"""

from __future__ import annotations

import logging
import os
from typing import Optional

_ROOT = "duckport"
_configured = False


def _resolve_level() -> int:
    if os.getenv("DUCKPORT_DEBUG", "").lower() in ("1", "true", "yes", "on"):
        return logging.DEBUG
    name = (os.getenv("DUCKPORT_LOG_LEVEL") or "WARNING").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def _configure_root() -> None:
    global _configured
    if _configured:
        return
    root = logging.getLogger(_ROOT)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("[%(name)s] %(levelname)s: %(message)s")
        )
        root.addHandler(handler)
    root.setLevel(_resolve_level())
    root.propagate = False
    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger under the duckport namespace."""
    _configure_root()
    if not name or name == _ROOT:
        return logging.getLogger(_ROOT)
    if not name.startswith(_ROOT + "."):
        name = f"{_ROOT}.{name}"
    return logging.getLogger(name)


def set_debug(enabled: bool = True) -> None:
    """Switch the duckport root logger to DEBUG (or back to the env level)."""
    _configure_root()
    logging.getLogger(_ROOT).setLevel(logging.DEBUG if enabled else _resolve_level())


def log_exception(logger: logging.Logger, message: str, exc: BaseException) -> None:
    """
    Log a handled exception.

    The traceback is only attached at DEBUG so normal runs stay one-line.
    """
    if logger.isEnabledFor(logging.DEBUG):
        logger.warning("%s: %s", message, exc, exc_info=exc)
    else:
        logger.warning("%s: %s", message, exc)
