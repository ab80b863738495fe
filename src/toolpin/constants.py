# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Names, defaults and reserved exit codes shared across the launcher."""

from __future__ import annotations

from typing import Final

PROG_NAME: Final[str] = "toolpin"
CACHE_SUBDIR: Final[str] = "toolpin"

# Environment variables read by the outermost assembly step only.
VERSION_ENV: Final[str] = "TOOLPIN_VERSION"
LEGACY_VERSION_ENV_TEMPLATE: Final[str] = "USE_{tool}_VERSION"
DOWNLOAD_URL_ENV: Final[str] = "TOOLPIN_DOWNLOAD_URL"
COMPAT_CHECK_ENV: Final[str] = "TOOLPIN_COMPAT_CHECK"
COMPAT_STRICT_ENV: Final[str] = "TOOLPIN_COMPAT_STRICT"
CACHE_ENV: Final[str] = "TOOLPIN_CACHE"
INLINE_CONFIG_ENV: Final[str] = "TOOLPIN_CONFIG"
CONFIG_FILE_ENV: Final[str] = "TOOLPIN_CONFIG_FILE"
SCRIPT_ENV: Final[str] = "TOOLPIN_SCRIPT"
BINARY_ENV: Final[str] = "TOOLPIN_BINARY"
VERBOSE_ENV: Final[str] = "TOOLPIN_VERBOSE"

PROJECT_CONFIG_FILENAME: Final[str] = ".toolpin.toml"
VERSION_PIN_FILENAME: Final[str] = ".toolpin-version"
LEGACY_VERSION_PIN_FILENAME: Final[str] = ".buckversion"

LATEST_SENTINEL: Final[str] = "latest"

DEFAULT_TOOL_NAME: Final[str] = "buck2"
DEFAULT_BASE_DOWNLOAD_URL: Final[str] = "https://github.com/facebook/buck2/releases/download"
DEFAULT_RELEASE_INDEX_URL: Final[str] = "https://api.github.com/repos/facebook/buck2/releases"
DEFAULT_ARCHIVE_PATTERN: Final[str] = "buck2-%target%.zst"
DEFAULT_COMPAT_ARTIFACT: Final[str] = "prelude_hash"
DEFAULT_LATEST_TTL_SECONDS: Final[int] = 15 * 60
DEFAULT_TIMEOUT_SECONDS: Final[float] = 60.0
DEFAULT_MAX_RETRIES: Final[int] = 3
DEFAULT_BACKOFF_SECONDS: Final[float] = 0.5
STAGING_MAX_AGE_SECONDS: Final[int] = 24 * 60 * 60
RELEASE_INDEX_MAX_PAGES: Final[int] = 10

# Exit codes reserved for launcher failures; anything else comes from the tool.
EXIT_CONFIG: Final[int] = 201
EXIT_RESOLUTION: Final[int] = 202
EXIT_NETWORK: Final[int] = 203
EXIT_HTTP: Final[int] = 204
EXIT_CORRUPT: Final[int] = 205
EXIT_CACHE: Final[int] = 206
EXIT_COMPAT: Final[int] = 207
EXIT_AMBIGUOUS_BINARY: Final[int] = 208
EXIT_MISSING_EXECUTABLE: Final[int] = 209
SIGNAL_EXIT_BASE: Final[int] = 128

__all__ = [
    "BINARY_ENV",
    "CACHE_ENV",
    "CACHE_SUBDIR",
    "COMPAT_CHECK_ENV",
    "COMPAT_STRICT_ENV",
    "CONFIG_FILE_ENV",
    "DEFAULT_ARCHIVE_PATTERN",
    "DEFAULT_BACKOFF_SECONDS",
    "DEFAULT_BASE_DOWNLOAD_URL",
    "DEFAULT_COMPAT_ARTIFACT",
    "DEFAULT_LATEST_TTL_SECONDS",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RELEASE_INDEX_URL",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_TOOL_NAME",
    "DOWNLOAD_URL_ENV",
    "EXIT_AMBIGUOUS_BINARY",
    "EXIT_CACHE",
    "EXIT_COMPAT",
    "EXIT_CONFIG",
    "EXIT_CORRUPT",
    "EXIT_HTTP",
    "EXIT_MISSING_EXECUTABLE",
    "EXIT_NETWORK",
    "EXIT_RESOLUTION",
    "INLINE_CONFIG_ENV",
    "LATEST_SENTINEL",
    "LEGACY_VERSION_ENV_TEMPLATE",
    "LEGACY_VERSION_PIN_FILENAME",
    "PROG_NAME",
    "PROJECT_CONFIG_FILENAME",
    "RELEASE_INDEX_MAX_PAGES",
    "SCRIPT_ENV",
    "SIGNAL_EXIT_BASE",
    "STAGING_MAX_AGE_SECONDS",
    "VERBOSE_ENV",
    "VERSION_ENV",
    "VERSION_PIN_FILENAME",
]
