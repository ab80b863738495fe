# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing logging helpers with terminal-aware colour."""

from __future__ import annotations

import logging
import os
import sys

from rich.text import Text

from .console import detect_tty, get_console_manager
from .constants import PROG_NAME, VERBOSE_ENV

LOGGER = logging.getLogger("toolpin")


def configure_debug_logging(enabled: bool | None = None) -> None:
    """Stream debug records from the ``toolpin`` logger to stderr when requested.

    Args:
        enabled: Explicit toggle; ``None`` consults ``TOOLPIN_VERBOSE``.
    """

    if enabled is None:
        enabled = bool(os.environ.get(VERBOSE_ENV))
    if not enabled:
        return
    if getattr(LOGGER, "_toolpin_verbose_configured", False):
        return
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter(f"{PROG_NAME}: %(message)s"))
    LOGGER.addHandler(handler)
    LOGGER.setLevel(logging.DEBUG)
    LOGGER.propagate = False
    setattr(LOGGER, "_toolpin_verbose_configured", True)


def _print_line(msg: str, *, style: str) -> None:
    """Render ``msg`` on stderr prefixed with the program name.

    Args:
        msg: Message text to print to the console.
        style: Rich style name applied when stderr is a terminal.
    """

    color_enabled = detect_tty()
    console = get_console_manager().get(color=color_enabled)
    text = Text(f"{PROG_NAME}: {msg}")
    if color_enabled:
        text.stylize(style)
    console.print(text)


def info(msg: str) -> None:
    """Emit an informational message."""

    _print_line(msg, style="cyan")


def ok(msg: str) -> None:
    """Emit a success message."""

    _print_line(msg, style="green")


def warn(msg: str) -> None:
    """Emit a warning message.

    Args:
        msg: Message text to display.
    """

    _print_line(msg, style="yellow")


def fail(msg: str) -> None:
    """Emit an error message.

    Args:
        msg: Message text to display.
    """

    _print_line(msg, style="red")


__all__ = ["LOGGER", "configure_debug_logging", "fail", "info", "ok", "warn"]
