# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""On-disk cache of extracted tool archives."""

from __future__ import annotations

from .store import MARKER_FILENAME, CacheEntry, CacheKey, CacheStore, EntryMarker, StagingHandle

__all__ = ["MARKER_FILENAME", "CacheEntry", "CacheKey", "CacheStore", "EntryMarker", "StagingHandle"]
