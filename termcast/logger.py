"""Diagnostic messages printed to standard output, silenced in quiet mode."""

from __future__ import annotations

import threading

_enabled = threading.Event()
_enabled.set()


def disable() -> None:
    """Suppress further messages."""
    _enabled.clear()


def enable() -> None:
    """Print messages again."""
    _enabled.set()


def info(message: str) -> None:
    """Print a diagnostic message unless disabled."""
    if _enabled.is_set():
        print(f"::: {message}", flush=True)