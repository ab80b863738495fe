# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Expand archive name patterns such as ``buck2-%target%.zst``."""

from __future__ import annotations

import re
from typing import Final

from .platform import HostTriple

PLACEHOLDER_PATTERN: Final[re.Pattern[str]] = re.compile(r"%([A-Za-z_][A-Za-z0-9_]*)%")
_UNTERMINATED_PATTERN: Final[re.Pattern[str]] = re.compile(r"%[A-Za-z_][A-Za-z0-9_]*$")
KNOWN_PLACEHOLDERS: Final[frozenset[str]] = frozenset({"version", "target", "arch", "os"})


def validate_pattern(pattern: str) -> str | None:
    """Return a description of the syntax problem in ``pattern``, if any.

    Args:
        pattern: Template string to inspect.

    Returns:
        str | None: Problem description, or ``None`` when the pattern is well formed.
    """

    if not pattern.strip():
        return "pattern is empty"
    if _UNTERMINATED_PATTERN.search(pattern):
        return f"pattern {pattern!r} ends with an unterminated placeholder"
    return None


def expand(pattern: str, version: str, host: HostTriple) -> str:
    """Substitute the known placeholders in ``pattern``.

    Unknown placeholders are left untouched so callers can report them.

    Args:
        pattern: Template containing ``%version%``, ``%target%``, ``%arch%`` or ``%os%``.
        version: Raw resolved version string.
        host: Host triple of the running machine.

    Returns:
        str: Concrete string with every known placeholder replaced.
    """

    values = {
        "version": version,
        "target": host.triple,
        "arch": host.arch,
        "os": host.os,
    }

    def _replace(match: re.Match[str]) -> str:
        return values.get(match.group(1), match.group(0))

    return PLACEHOLDER_PATTERN.sub(_replace, pattern)


def unknown_placeholders(text: str) -> tuple[str, ...]:
    """Return placeholder names that remain in an expanded string.

    Args:
        text: Output of :func:`expand`.

    Returns:
        tuple[str, ...]: Placeholder names in order of appearance.
    """

    return tuple(match.group(1) for match in PLACEHOLDER_PATTERN.finditer(text))


def archive_url(base_download_url: str, version: str, archive_name: str) -> str:
    """Return ``{base_download_url}/{version}/{archive_name}``."""

    return f"{base_download_url.rstrip('/')}/{version}/{archive_name}"


__all__ = [
    "KNOWN_PLACEHOLDERS",
    "archive_url",
    "expand",
    "unknown_placeholders",
    "validate_pattern",
]
