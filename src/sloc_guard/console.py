"""Stderr diagnostics shared by every command."""

from __future__ import annotations

from dataclasses import dataclass
import threading

import typer


@dataclass
class Verbosity:
    verbose: int = 0
    color: bool = True


_VERBOSITY = Verbosity()
_ONCE_LOCK = threading.Lock()
_ONCE_KEYS: set[str] = set()


def configure(*, verbose: int = 0, color: bool = True) -> None:
    _VERBOSITY.verbose = verbose
    _VERBOSITY.color = color


def color_enabled() -> bool:
    return _VERBOSITY.color


def warn(message: str) -> None:
    """Non-fatal problems; printed even under ``--quiet``."""
    typer.secho(
        f"warning: {message}",
        err=True,
        fg=typer.colors.YELLOW if _VERBOSITY.color else None,
    )


def warn_once(key: str, message: str) -> bool:
    """Emit ``message`` the first time ``key`` is seen in this process."""
    with _ONCE_LOCK:
        if key in _ONCE_KEYS:
            return False
        _ONCE_KEYS.add(key)
    warn(message)
    return True


def debug(message: str) -> None:
    if _VERBOSITY.verbose > 0:
        typer.echo(message, err=True)
