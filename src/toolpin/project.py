# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Helpers for locating project files above the working directory."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path


def iter_ancestors(start: Path) -> Iterable[Path]:
    """Yield ``start`` and each of its parents, nearest first.

    Args:
        start: Directory whose ancestors should be traversed.

    Yields:
        Path: Candidate directories.
    """

    resolved = start.resolve()
    yield resolved
    yield from resolved.parents


def find_nearest(start: Path, filename: str) -> Path | None:
    """Return the nearest file called ``filename`` at or above ``start``.

    Args:
        start: Directory where the search begins.
        filename: File name to look for in each ancestor.

    Returns:
        Path | None: Path of the closest matching file, or ``None`` when absent.
    """

    for directory in iter_ancestors(start):
        candidate = directory / filename
        if candidate.is_file():
            return candidate
    return None


def find_project_root(start: Path, *, project_marker: str, root_marker: str) -> Path | None:
    """Return the project root for ``start``.

    A directory holding ``root_marker`` ends the search and is the root.
    Otherwise the furthest ancestor holding ``project_marker`` wins.

    Args:
        start: Directory where the search begins.
        project_marker: File name marking a project directory (``.buckconfig``).
        root_marker: File name that forbids looking any higher (``.buckroot``).

    Returns:
        Path | None: Project root directory, or ``None`` when no marker exists.
    """

    current_root: Path | None = None
    for directory in iter_ancestors(start):
        if (directory / root_marker).exists():
            return directory
        if (directory / project_marker).exists():
            current_root = directory
    return current_root


__all__ = ["find_nearest", "find_project_root", "iter_ancestors"]
