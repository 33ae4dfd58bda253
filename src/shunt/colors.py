"""Prefix color selection."""

import os
from typing import IO

from shunt.constants import CYAN, GREEN, MAGENTA, RED, RESET, YELLOW

PALETTE = (GREEN, RED, CYAN, MAGENTA, YELLOW)


def supports_color(stream: IO) -> bool:
    """Return whether ANSI color output should be used on ``stream``."""
    if os.getenv("NO_COLOR") is not None:
        return False
    if os.getenv("TERM", "").lower() == "dumb":
        return False
    return hasattr(stream, "isatty") and stream.isatty()


def pick_color(index: int) -> str:
    """Return the palette color for the command at ``index``, cycling."""
    return PALETTE[index % len(PALETTE)]


def colorize(text: str, color: str | None) -> str:
    if not color:
        return text
    return f"{color}{text}{RESET}"
