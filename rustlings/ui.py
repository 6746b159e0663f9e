"""Coloured status lines printed to the terminal."""

from __future__ import annotations

import os

from rich.console import Console
from rich.text import Text

WARN_EMOJI = "⚠️ "
WARN_FALLBACK = "!"
SUCCESS_EMOJI = "✅"
SUCCESS_FALLBACK = "✓"


def no_emoji() -> bool:
    """Return True when the NO_EMOJI environment variable is set."""
    return "NO_EMOJI" in os.environ


def _console() -> Console:
    return Console(highlight=False, soft_wrap=True, emoji=False, markup=False)


def _emit(symbol: str, fallback: str, message: str, style: str) -> None:
    marker = fallback if no_emoji() else symbol
    _console().print(Text.assemble((marker, style), " ", (message, style)))


def warn(message: str) -> None:
    """Print a red warning line."""
    _emit(WARN_EMOJI, WARN_FALLBACK, message, "red")


def success(message: str) -> None:
    """Print a green success line."""
    _emit(SUCCESS_EMOJI, SUCCESS_FALLBACK, message, "green")