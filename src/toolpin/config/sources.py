# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Concrete configuration sources (defaults, pin files, TOML, environment)."""

from __future__ import annotations

import re
import tomllib
from collections.abc import Mapping, MutableMapping
from pathlib import Path
from typing import Any, Final, Protocol

from ..constants import (
    CACHE_ENV,
    COMPAT_CHECK_ENV,
    COMPAT_STRICT_ENV,
    DEFAULT_ARCHIVE_PATTERN,
    DEFAULT_BASE_DOWNLOAD_URL,
    DEFAULT_RELEASE_INDEX_URL,
    DEFAULT_TOOL_NAME,
    DOWNLOAD_URL_ENV,
    LATEST_SENTINEL,
    LEGACY_VERSION_ENV_TEMPLATE,
    LEGACY_VERSION_PIN_FILENAME,
    VERSION_ENV,
)
from ..errors import ConfigError
from ..logging import LOGGER, warn
from ..project import find_nearest, find_project_root
from ..utils import coerce_bool_literal

ConfigFragment = Mapping[str, Any]

_PATH_KEYS: Final[tuple[str, ...]] = ("cache_dir",)
_ENV_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"[^A-Z0-9]+")


class ConfigSource(Protocol):
    """Provide configuration data loaded from disk or other mediums."""

    name: str

    def load(self) -> ConfigFragment:
        """Return configuration values as a mapping."""

    def describe(self) -> str:
        """Return a human-readable description of the source."""


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _parse_toml(text: str, origin: str) -> dict[str, Any]:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Could not parse {origin}: {exc}") from exc
    if not isinstance(data, MutableMapping):
        raise ConfigError(f"Configuration at {origin} must be a table")
    return dict(data)


def _resolve_relative_paths(document: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    for key in _PATH_KEYS:
        raw = document.get(key)
        if isinstance(raw, str) and raw:
            candidate = Path(raw).expanduser()
            document[key] = str(candidate if candidate.is_absolute() else base_dir / candidate)
    return document


class DefaultConfigSource:
    """Return the built-in defaults pointing at the newest ``buck2`` release.

    Download locations are only known for the default tool, so they are
    contributed by :meth:`tool_defaults` once the merged ``tool_name`` is known.
    """

    name = "defaults"

    def load(self) -> ConfigFragment:
        return {
            "tool_name": DEFAULT_TOOL_NAME,
            "version": LATEST_SENTINEL,
            "check_compat": True,
        }

    @staticmethod
    def tool_defaults(tool_name: object) -> ConfigFragment:
        """Return the download defaults for ``tool_name``, empty for custom tools."""

        if not isinstance(tool_name, str) or tool_name.strip() != DEFAULT_TOOL_NAME:
            return {}
        return {
            "base_download_url": DEFAULT_BASE_DOWNLOAD_URL,
            "archive_pattern": DEFAULT_ARCHIVE_PATTERN,
            "release_index": {"url": DEFAULT_RELEASE_INDEX_URL},
        }

    def describe(self) -> str:
        return "Built-in defaults"


class VersionPinSource:
    """Read a single-line version spec from the nearest pin file.

    ``.toolpin-version`` is searched upwards from the working directory. When it
    is absent, the deprecated ``.buckversion`` at the buck2 project root is
    honoured with a warning.
    """

    def __init__(self, cwd: Path, *, filename: str, legacy_filename: str = LEGACY_VERSION_PIN_FILENAME) -> None:
        self._cwd = cwd
        self._filename = filename
        self._legacy_filename = legacy_filename
        self.name = filename

    def _locate(self) -> tuple[Path, bool] | None:
        if (pin := find_nearest(self._cwd, self._filename)) is not None:
            return pin, False
        root = find_project_root(self._cwd, project_marker=".buckconfig", root_marker=".buckroot")
        if root is not None and (legacy := root / self._legacy_filename).is_file():
            return legacy, True
        return None

    def load(self) -> ConfigFragment:
        located = self._locate()
        if located is None:
            return {}
        path, legacy = located
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise ConfigError(f"Could not read version pin file {path}: {exc}") from exc
        version = next((line.strip() for line in lines if line.strip()), "")
        if not version:
            raise ConfigError(f"Version pin file {path} is empty")
        if legacy:
            warn(f"{path.name} is deprecated; move the version into {self._filename}")
        self.name = str(path)
        LOGGER.debug("version %s pinned by %s", version, path)
        return {"version": version}

    def describe(self) -> str:
        return f"Version pin file {self.name}"


class TomlFileSource:
    """Load configuration data from a TOML document on disk.

    Args:
        path: Location of the TOML document.
        required: Raise :class:`ConfigError` when the file does not exist.
    """

    def __init__(self, path: Path, *, required: bool = False) -> None:
        self._path = path
        self._required = required
        self.name = str(path)

    def load(self) -> ConfigFragment:
        if not self._path.is_file():
            if self._required:
                raise ConfigError(
                    f"Configuration file {self._path} does not exist",
                    hint="Fix TOOLPIN_CONFIG_FILE or unset it.",
                )
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Could not read {self._path}: {exc}") from exc
        document = _parse_toml(text, str(self._path))
        return _resolve_relative_paths(document, self._path.resolve().parent)

    def describe(self) -> str:
        return f"TOML configuration at {self.name}"


class ProjectFileSource(TomlFileSource):
    """Read ``.toolpin.toml`` from the nearest ancestor of the working directory."""

    def __init__(self, cwd: Path, *, filename: str) -> None:
        located = find_nearest(cwd, filename)
        super().__init__(located if located is not None else cwd / filename)

    def describe(self) -> str:
        return f"Project configuration ({self.name})"


class InlineConfigSource:
    """Parse a TOML payload passed through ``TOOLPIN_CONFIG``."""

    name = "inline"

    def __init__(self, payload: str, *, cwd: Path) -> None:
        self._payload = payload
        self._cwd = cwd

    def load(self) -> ConfigFragment:
        document = _parse_toml(self._payload, "TOOLPIN_CONFIG")
        return _resolve_relative_paths(document, self._cwd)

    def describe(self) -> str:
        return "Inline configuration from TOOLPIN_CONFIG"


def _env_bool(env: Mapping[str, str], key: str) -> bool | None:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None
    try:
        return coerce_bool_literal(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a boolean literal, got {raw!r}", hint="Use yes/no, true/false or 1/0.") from exc


class EnvironmentSource:
    """Apply per-field overrides read from environment variables."""

    name = "environment"

    def __init__(self, env: Mapping[str, str], *, cwd: Path) -> None:
        self._env = env
        self._cwd = cwd

    def load(self) -> ConfigFragment:
        fragment: dict[str, Any] = {}
        if url := self._env.get(DOWNLOAD_URL_ENV, "").strip():
            fragment["base_download_url"] = url
        if (check := _env_bool(self._env, COMPAT_CHECK_ENV)) is not None:
            fragment["check_compat"] = check
        if (strict := _env_bool(self._env, COMPAT_STRICT_ENV)) is not None:
            fragment["compat"] = {"strict": strict}
        if cache := self._env.get(CACHE_ENV, "").strip():
            fragment["cache_dir"] = cache
        return _resolve_relative_paths(fragment, self._cwd)

    def describe(self) -> str:
        return "Environment variable overrides"


def legacy_version_env(tool_name: str) -> str:
    """Return the per-tool version variable, ``USE_BUCK2_VERSION`` for ``buck2``."""

    token = _ENV_NAME_PATTERN.sub("_", tool_name.upper()).strip("_")
    return LEGACY_VERSION_ENV_TEMPLATE.format(tool=token)


def version_override(env: Mapping[str, str], tool_name: str) -> str | None:
    """Return the version spec forced through the environment, if any.

    Args:
        env: Environment mapping supplied by the outermost assembly step.
        tool_name: Merged tool identity used to derive the legacy variable name.

    Returns:
        str | None: Non-empty override, ``TOOLPIN_VERSION`` taking precedence.
    """

    for key in (VERSION_ENV, legacy_version_env(tool_name)):
        if value := env.get(key, "").strip():
            return value
    return None


__all__ = [
    "ConfigFragment",
    "ConfigSource",
    "DefaultConfigSource",
    "EnvironmentSource",
    "InlineConfigSource",
    "ProjectFileSource",
    "TomlFileSource",
    "VersionPinSource",
    "legacy_version_env",
    "version_override",
]
