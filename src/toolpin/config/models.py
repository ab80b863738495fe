# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models describing one launcher invocation."""

from __future__ import annotations

import re
from enum import StrEnum
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..constants import (
    DEFAULT_BACKOFF_SECONDS,
    DEFAULT_COMPAT_ARTIFACT,
    DEFAULT_LATEST_TTL_SECONDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
    LATEST_SENTINEL,
)
from ..templates import validate_pattern


class PackageType(StrEnum):
    """Enumerate the archive layouts the extractor understands."""

    SINGLE_FILE = "single_file"
    ZSTD_SINGLE_FILE = "zstd_single_file"
    TAR = "tar"
    TAR_GZ = "tar_gz"
    TAR_ZST = "tar_zst"
    ZIP = "zip"

    @classmethod
    def infer(cls, archive_name: str) -> PackageType:
        """Return the package type implied by the suffix of ``archive_name``.

        Args:
            archive_name: Expanded archive file name.

        Returns:
            PackageType: Best matching package type, ``single_file`` when unknown.
        """

        lowered = archive_name.lower()
        for suffixes, package_type in _SUFFIX_TYPES:
            if lowered.endswith(suffixes):
                return package_type
        return cls.SINGLE_FILE


_SUFFIX_TYPES: Final[tuple[tuple[tuple[str, ...], PackageType], ...]] = (
    ((".tar.zst", ".tzst"), PackageType.TAR_ZST),
    ((".tar.gz", ".tgz"), PackageType.TAR_GZ),
    ((".tar",), PackageType.TAR),
    ((".zip",), PackageType.ZIP),
    ((".zst",), PackageType.ZSTD_SINGLE_FILE),
)


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class BinarySpec(_Section):
    """Binary runnable from an extracted archive.

    Attributes:
        name: Selector name used by ``TOOLPIN_BINARY`` and multi-call invocations.
        path: Location of the executable relative to the archive root.
    """

    name: str = Field(min_length=1)
    path: str

    @model_validator(mode="before")
    @classmethod
    def _default_path(cls, data: object) -> object:
        if isinstance(data, str):
            return {"name": data, "path": data}
        if isinstance(data, dict) and not data.get("path") and data.get("name"):
            return {**data, "path": data["name"]}
        return data

    @field_validator("path")
    @classmethod
    def _relative_path(cls, value: str) -> str:
        candidate = Path(value)
        if candidate.is_absolute() or ".." in candidate.parts:
            raise ValueError(f"binary path must stay inside the archive: {value!r}")
        return value


class CompatSettings(_Section):
    """Compatibility check between the tool version and project-local state.

    Attributes:
        strict: Abort the launch on mismatch instead of warning.
        artifact: Name of the per-version artifact next to the archive.
        path: Project-relative path whose checked-out commit is compared.
        project_marker: File marking a project directory.
        root_marker: File that stops the project root search.
        ini_section: Section of the project marker holding the compared path.
        ini_key: Key inside ``ini_section`` holding the compared path.
    """

    strict: bool = False
    artifact: str = DEFAULT_COMPAT_ARTIFACT
    path: str | None = None
    project_marker: str = ".buckconfig"
    root_marker: str = ".buckroot"
    ini_section: str = "repositories"
    ini_key: str = "prelude"


class ReleaseIndexSettings(_Section):
    """Where and how ``"latest"`` is looked up.

    Attributes:
        url: JSON endpoint enumerating available versions.
        version_pattern: Optional regular expression eligible versions must match.
        include_prereleases: Whether prerelease entries are eligible.
        latest_ttl_seconds: How long a cached index snapshot is trusted without a network query.
    """

    url: str | None = None
    version_pattern: str | None = None
    include_prereleases: bool = False
    latest_ttl_seconds: int = Field(default=DEFAULT_LATEST_TTL_SECONDS, ge=0)

    @field_validator("version_pattern")
    @classmethod
    def _compiles(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                re.compile(value)
            except re.error as exc:
                raise ValueError(f"invalid regular expression: {exc}") from exc
        return value


class NetworkSettings(_Section):
    """Transport settings shared by every HTTP request."""

    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    backoff_seconds: float = Field(default=DEFAULT_BACKOFF_SECONDS, ge=0)
    allow_insecure_http: bool = False


class EffectiveConfig(_Section):
    """Merged settings for one launcher invocation."""

    tool_name: str
    version: str = LATEST_SENTINEL
    base_download_url: str
    archive_pattern: str
    package_type: PackageType | None = None
    binaries: tuple[BinarySpec, ...] = Field(min_length=1)
    default_binary: str | None = None
    require_binary_selection: bool = False
    check_compat: bool = True
    compat: CompatSettings = Field(default_factory=CompatSettings)
    cache_dir: Path | None = None
    release_index: ReleaseIndexSettings = Field(default_factory=ReleaseIndexSettings)
    network: NetworkSettings = Field(default_factory=NetworkSettings)

    @field_validator("tool_name", "version", "base_download_url")
    @classmethod
    def _non_blank(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be empty")
        return stripped

    @field_validator("archive_pattern")
    @classmethod
    def _well_formed_pattern(cls, value: str) -> str:
        problem = validate_pattern(value)
        if problem is not None:
            raise ValueError(problem)
        return value

    @model_validator(mode="after")
    def _check_binaries(self) -> EffectiveConfig:
        names = [binary.name for binary in self.binaries]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"binary names must be unique: {', '.join(duplicates)}")
        if self.default_binary is not None and self.default_binary not in names:
            raise ValueError(f"default_binary {self.default_binary!r} is not a declared binary")
        return self

    @property
    def is_latest(self) -> bool:
        """Return whether the version spec asks for the newest release."""

        return self.version.lower() == LATEST_SENTINEL


__all__ = [
    "BinarySpec",
    "CompatSettings",
    "EffectiveConfig",
    "NetworkSettings",
    "PackageType",
    "ReleaseIndexSettings",
]
