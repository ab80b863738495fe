# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Layered configuration loading for a single launcher invocation."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..constants import CONFIG_FILE_ENV, INLINE_CONFIG_ENV, PROJECT_CONFIG_FILENAME, VERSION_PIN_FILENAME
from ..errors import ConfigError
from ..logging import LOGGER
from .models import EffectiveConfig
from .sources import (
    ConfigSource,
    DefaultConfigSource,
    EnvironmentSource,
    InlineConfigSource,
    ProjectFileSource,
    TomlFileSource,
    VersionPinSource,
    _deep_merge,
    version_override,
)


@dataclass(frozen=True, slots=True)
class ConfigLoadResult:
    """Merged configuration plus provenance details.

    Attributes:
        config: Validated configuration for the invocation.
        version_override: Version spec forced through the environment, if any.
        sources: Descriptions of the sources that contributed values, lowest priority first.
    """

    config: EffectiveConfig
    version_override: str | None
    sources: tuple[str, ...]

    @property
    def version_spec(self) -> str:
        """Return the version spec the resolver should honour."""

        return self.version_override or self.config.version


def _format_validation_error(error: ValidationError) -> str:
    details = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "<root>"
        details.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "; ".join(details)


class ConfigLoader:
    """Apply layered configuration sources with predictable precedence.

    Sources are given lowest priority first; each one overrides the fields it
    defines and leaves the rest untouched.
    """

    def __init__(self, *, sources: Sequence[ConfigSource], env: Mapping[str, str] | None = None) -> None:
        if not sources:
            raise ValueError("at least one configuration source is required")
        self._sources = list(sources)
        self._env = dict(env or {})

    @classmethod
    def for_environment(cls, cwd: Path, env: Mapping[str, str]) -> ConfigLoader:
        """Build a loader that honours every supported configuration layer.

        Args:
            cwd: Working directory of the invocation.
            env: Environment mapping read by the outermost assembly step.

        Returns:
            ConfigLoader: Loader configured with the default precedence ordering.
        """

        sources: list[ConfigSource] = [
            DefaultConfigSource(),
            VersionPinSource(cwd, filename=VERSION_PIN_FILENAME),
            ProjectFileSource(cwd, filename=PROJECT_CONFIG_FILENAME),
        ]
        if explicit := env.get(CONFIG_FILE_ENV, "").strip():
            explicit_path = Path(explicit).expanduser()
            if not explicit_path.is_absolute():
                explicit_path = cwd / explicit_path
            sources.append(TomlFileSource(explicit_path, required=True))
        if inline := env.get(INLINE_CONFIG_ENV, "").strip():
            sources.append(InlineConfigSource(inline, cwd=cwd))
        sources.append(EnvironmentSource(env, cwd=cwd))
        return cls(sources=sources, env=env)

    def merge(self) -> tuple[dict[str, Any], tuple[str, ...]]:
        """Return the raw merged mapping and the sources that contributed to it.

        Raises:
            ConfigError: If any source cannot be read or parsed.
        """

        merged: dict[str, Any] = {}
        contributors: list[str] = []
        for source in self._sources:
            if not (fragment := source.load()):
                continue
            LOGGER.debug("config: %s sets %s", source.describe(), ", ".join(sorted(fragment)))
            merged = _deep_merge(merged, fragment)
            contributors.append(source.describe())
        return merged, tuple(contributors)

    def load_with_trace(self) -> ConfigLoadResult:
        """Return the validated configuration together with provenance metadata.

        Raises:
            ConfigError: If a source fails or the merged values are invalid.
        """

        merged, contributors = self.merge()
        merged = _deep_merge(DefaultConfigSource.tool_defaults(merged.get("tool_name")), merged)
        if "binaries" not in merged and isinstance(merged.get("tool_name"), str):
            merged["binaries"] = [{"name": merged["tool_name"].strip()}]
        try:
            config = EffectiveConfig.model_validate(merged)
        except ValidationError as exc:
            raise ConfigError(
                f"Invalid configuration: {_format_validation_error(exc)}",
                hint=f"Merged from: {', '.join(contributors) or 'no sources'}",
            ) from exc
        return ConfigLoadResult(
            config=config,
            version_override=version_override(self._env, config.tool_name),
            sources=contributors,
        )

    def load(self) -> EffectiveConfig:
        """Return the resolved configuration without provenance metadata."""

        return self.load_with_trace().config


def load_config(cwd: Path, env: Mapping[str, str]) -> ConfigLoadResult:
    """Load configuration for ``cwd`` using the default layered sources."""

    return ConfigLoader.for_environment(cwd, env).load_with_trace()


__all__ = ["ConfigLoadResult", "ConfigLoader", "load_config"]
