# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Small parsing helpers shared across modules."""

from __future__ import annotations

import re
from typing import Final

TRUTHY_LITERALS: Final[set[str]] = {"1", "true", "yes", "on"}
FALSY_LITERALS: Final[set[str]] = {"0", "false", "no", "off"}
_SLUG_PATTERN: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9_.-]+")


def coerce_bool_literal(value: str) -> bool:
    """Return the boolean represented by ``value`` or raise ``ValueError``.

    Args:
        value: Raw string containing a boolean literal.

    Returns:
        bool: ``True`` for truthy literals, ``False`` for falsy literals.

    Raises:
        ValueError: If ``value`` does not match a known boolean literal.
    """

    normalized = value.strip().lower()
    if normalized in TRUTHY_LITERALS:
        return True
    if normalized in FALSY_LITERALS:
        return False
    raise ValueError(f"Unsupported boolean literal: {value!r}")


def env_flag(value: str | None) -> bool:
    """Return ``True`` when an environment value is set to anything but a falsy literal."""

    if value is None:
        return False
    stripped = value.strip()
    if not stripped:
        return False
    return stripped.lower() not in FALSY_LITERALS


def slugify(value: str) -> str:
    """Return the filesystem-friendly slug for ``value``.

    Args:
        value: Input string requiring sanitisation.

    Returns:
        str: Slug containing only safe filesystem characters.
    """

    slug = _SLUG_PATTERN.sub("-", value).strip("-")
    if slug in {"", ".", ".."}:
        return "_"
    return slug


__all__ = ["FALSY_LITERALS", "TRUTHY_LITERALS", "coerce_bool_literal", "env_flag", "slugify"]
