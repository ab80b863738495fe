# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Cross-check a tool version against the project's checked-out prelude."""

from __future__ import annotations

import configparser
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from subprocess import CompletedProcess
from typing import Final

from .config.models import CompatSettings
from .errors import CompatMismatchError, FetchError
from .fetch.http import HttpClient
from .logging import LOGGER, warn
from .process import CommandOptions, SubprocessExecutionError, run_command
from .project import find_project_root
from .templates import archive_url

GIT_TIMEOUT_SECONDS: Final[float] = 10.0
_UNINITIALISED_PREFIX: Final[str] = "-"

CommandRunner = Callable[..., CompletedProcess[str]]


class CompatStatus(StrEnum):
    """Outcome of a compatibility check."""

    MATCH = "match"
    MISMATCH = "mismatch"
    SKIPPED = "skipped"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class CompatResult:
    """Result of comparing the expected and the checked-out commit."""

    status: CompatStatus
    path: Path | None = None
    expected: str | None = None
    actual: str | None = None

    @property
    def remediation(self) -> str | None:
        """Return the command that brings the checkout in line, for mismatches."""

        if self.status is not CompatStatus.MISMATCH or self.path is None:
            return None
        return f"cd {self.path} && git fetch && git checkout {self.expected}"


def read_ini_path(marker: Path, *, section: str, key: str) -> str | None:
    """Return ``[section] key`` from the INI-style project marker, if present."""

    parser = configparser.ConfigParser(interpolation=None, strict=False)
    try:
        parser.read(marker, encoding="utf-8")
    except (configparser.Error, UnicodeDecodeError) as exc:
        LOGGER.debug("cannot parse %s: %s", marker, exc)
        return None
    value = parser.get(section, key, fallback=None)
    return value.strip() if value and value.strip() else None


def parse_submodule_status(output: str) -> str | None:
    """Return the checked-out commit from ``git submodule status`` output.

    Lines look like `` <sha> path (describe)`` with a one-character state
    prefix; ``-`` marks an uninitialised submodule.
    """

    for line in output.splitlines():
        if not line.strip():
            continue
        if line.startswith(_UNINITIALISED_PREFIX):
            return None
        fields = line[1:].split()
        return fields[0] if fields else None
    return None


class CompatValidator:
    """Compare the per-version compatibility artifact with project state.

    Args:
        client: HTTP transport used to fetch the artifact.
        settings: Compatibility settings from the effective configuration.
        runner: Subprocess runner used for ``git`` queries.
    """

    def __init__(
        self,
        client: HttpClient,
        settings: CompatSettings,
        *,
        runner: CommandRunner = run_command,
    ) -> None:
        self._client = client
        self._settings = settings
        self._runner = runner

    def local_commit(self, cwd: Path) -> tuple[Path, str] | None:
        """Return the compared path and its checked-out commit, or ``None`` to skip.

        Args:
            cwd: Working directory of the invocation.

        Returns:
            tuple[Path, str] | None: Absolute path and commit when determinable.
        """

        settings = self._settings
        root = find_project_root(cwd, project_marker=settings.project_marker, root_marker=settings.root_marker)
        if root is None:
            LOGGER.debug("compat: no %s found above %s", settings.project_marker, cwd)
            return None
        relative = settings.path or read_ini_path(
            root / settings.project_marker,
            section=settings.ini_section,
            key=settings.ini_key,
        )
        if not relative:
            LOGGER.debug("compat: no [%s] %s entry in %s", settings.ini_section, settings.ini_key, root)
            return None
        try:
            completed = self._runner(
                ["git", "submodule", "status", "--", relative],
                options=CommandOptions(cwd=root, capture_output=True, timeout=GIT_TIMEOUT_SECONDS),
            )
        except (FileNotFoundError, SubprocessExecutionError) as exc:
            LOGGER.debug("compat: git submodule status unavailable: %s", exc)
            return None
        commit = parse_submodule_status(completed.stdout or "")
        if commit is None:
            LOGGER.debug("compat: %s is not an initialised submodule", relative)
            return None
        return (root / relative).resolve(), commit

    def expected_commit(self, base_download_url: str, version: str) -> str | None:
        """Fetch the compatibility artifact; ``None`` means compatibility is unknown."""

        url = archive_url(base_download_url, version, self._settings.artifact)
        try:
            text = self._client.get_text(url)
        except FetchError as exc:
            warn(f"compatibility unknown: could not fetch {url} ({exc})")
            return None
        expected = text.strip()
        if not expected:
            warn(f"compatibility unknown: {url} is empty")
            return None
        return expected

    def check(self, cwd: Path, *, base_download_url: str, version: str) -> CompatResult:
        """Run the check and report mismatches.

        Args:
            cwd: Working directory of the invocation.
            base_download_url: Base URL the artifact is published under.
            version: Resolved version token.

        Returns:
            CompatResult: Outcome of the comparison.

        Raises:
            CompatMismatchError: On mismatch when strict mode is enabled.
        """

        local = self.local_commit(cwd)
        if local is None:
            return CompatResult(status=CompatStatus.SKIPPED)
        path, actual = local
        expected = self.expected_commit(base_download_url, version)
        if expected is None:
            return CompatResult(status=CompatStatus.UNKNOWN, path=path, actual=actual)
        if actual == expected:
            LOGGER.debug("compat: %s matches %s", path, expected)
            return CompatResult(status=CompatStatus.MATCH, path=path, expected=expected, actual=actual)
        result = CompatResult(status=CompatStatus.MISMATCH, path=path, expected=expected, actual=actual)
        message = f"Git submodule {path.name} ({actual}) is not the expected {expected}."
        if self._settings.strict:
            raise CompatMismatchError(message, hint=result.remediation)
        warn(message)
        warn(str(result.remediation))
        return result


__all__ = [
    "CompatResult",
    "CompatStatus",
    "CompatValidator",
    "parse_submodule_status",
    "read_ini_path",
]
