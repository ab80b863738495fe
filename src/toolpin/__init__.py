# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Per-project version-pinning launcher for archived build tools."""

from __future__ import annotations

from typing import Final

__version__: Final[str] = "1.1.0"

__all__ = ["__version__"]
