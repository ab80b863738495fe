# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Command-line entry points: ``toolpin`` (:mod:`.main`) and ``toolpin-admin`` (:mod:`.admin`)."""

from __future__ import annotations

from .admin import app

__all__ = ["app"]
