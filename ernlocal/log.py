"""Logging helpers for ernlocal.

All output goes through the standard `logging` module with an `[ern]` prefix on stderr.

Environment variables:
- ERN_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default INFO)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

_CONFIGURED = False


def _configure_once() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return
    level = os.getenv("ERN_LOG_LEVEL", "INFO").upper()
    lvl = getattr(logging, level, None)
    if not isinstance(lvl, int):
        lvl = logging.INFO
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[ern] %(message)s"))
    root = logging.getLogger("ernlocal")
    root.addHandler(handler)
    root.setLevel(lvl)
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    _configure_once()
    return logging.getLogger(name)


@contextmanager
def spin(message: str, *, logger: logging.Logger | None = None) -> Iterator[None]:
    """Log `message` before the wrapped block and a pass/fail line after it.

    Exceptions are re-raised unchanged.
    """
    log = logger or get_logger("ernlocal")
    log.info(f"{message} ...")
    try:
        yield
    except BaseException as exc:
        log.error(f"✗ {message}: {exc}")
        raise
    log.info(f"✓ {message}")
