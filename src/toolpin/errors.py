# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Exceptions raised while resolving, materialising and launching tools."""

from __future__ import annotations

from .constants import (
    EXIT_AMBIGUOUS_BINARY,
    EXIT_CACHE,
    EXIT_COMPAT,
    EXIT_CONFIG,
    EXIT_CORRUPT,
    EXIT_HTTP,
    EXIT_MISSING_EXECUTABLE,
    EXIT_NETWORK,
    EXIT_RESOLUTION,
)


class ToolpinError(RuntimeError):
    """Base class for fatal launcher failures.

    Attributes:
        exit_code: Reserved process exit status reported for the failure.
        hint: Optional remediation shown after the failure message.
    """

    exit_code: int = 1

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        """Create the error with ``message`` and an optional remediation ``hint``.

        Args:
            message: Description of what failed.
            hint: Suggested remediation for the operator.
        """

        super().__init__(message)
        self.hint = hint


class ConfigError(ToolpinError):
    """Raised when configuration input is missing or invalid."""

    exit_code = EXIT_CONFIG


class ResolutionError(ToolpinError):
    """Raised when a version spec cannot be turned into a concrete version."""

    exit_code = EXIT_RESOLUTION


class FetchError(ToolpinError):
    """Base class for download and extraction failures."""

    exit_code = EXIT_NETWORK
    retryable: bool = False


class FetchNetworkError(FetchError):
    """Raised for connection, timeout and DNS failures."""

    exit_code = EXIT_NETWORK
    retryable = True


class FetchHttpError(FetchError):
    """Raised when the server answers with a non-success status."""

    exit_code = EXIT_HTTP

    def __init__(self, message: str, *, status: int, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.status = status


class CorruptArchiveError(FetchError):
    """Raised when a downloaded archive fails to decompress or unpack."""

    exit_code = EXIT_CORRUPT


class CacheError(ToolpinError):
    """Raised when the cache cannot be read or written."""

    exit_code = EXIT_CACHE


class CompatMismatchError(ToolpinError):
    """Raised in strict mode when the compatibility artifact does not match."""

    exit_code = EXIT_COMPAT


class LaunchError(ToolpinError):
    """Base class for binary selection and execution failures."""

    exit_code = EXIT_MISSING_EXECUTABLE


class AmbiguousBinaryError(LaunchError):
    """Raised when several binaries are declared and none was selected."""

    exit_code = EXIT_AMBIGUOUS_BINARY


class UnknownBinaryError(LaunchError):
    """Raised when the requested binary is not declared in the configuration."""

    exit_code = EXIT_AMBIGUOUS_BINARY


class MissingExecutableError(LaunchError):
    """Raised when the selected binary is absent or not executable."""

    exit_code = EXIT_MISSING_EXECUTABLE


__all__ = [
    "AmbiguousBinaryError",
    "CacheError",
    "CompatMismatchError",
    "ConfigError",
    "CorruptArchiveError",
    "FetchError",
    "FetchHttpError",
    "FetchNetworkError",
    "LaunchError",
    "MissingExecutableError",
    "ResolutionError",
    "ToolpinError",
    "UnknownBinaryError",
]
