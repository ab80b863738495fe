# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Network retrieval and archive extraction."""

from __future__ import annotations

from .archives import EXTRACTORS, Extractor, extractor_for
from .fetcher import Fetcher
from .http import HttpClient, RequestsHttpClient, ensure_transport_allowed, with_retries

__all__ = [
    "EXTRACTORS",
    "Extractor",
    "Fetcher",
    "HttpClient",
    "RequestsHttpClient",
    "ensure_transport_allowed",
    "extractor_for",
    "with_retries",
]
