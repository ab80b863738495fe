# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Host triple detection and per-OS cache locations."""

from __future__ import annotations

import platform
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .constants import CACHE_SUBDIR
from .errors import ConfigError

ARCH_ALIASES: Final[dict[str, str]] = {
    "amd64": "x86_64",
    "x86_64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
    "aarch64": "aarch64",
}

OS_ALIASES: Final[dict[str, str]] = {
    "linux": "linux",
    "darwin": "darwin",
    "macos": "darwin",
    "windows": "windows",
}

HOST_TRIPLES: Final[dict[tuple[str, str], str]] = {
    ("linux", "x86_64"): "x86_64-unknown-linux-musl",
    ("linux", "aarch64"): "aarch64-unknown-linux-gnu",
    ("darwin", "x86_64"): "x86_64-apple-darwin",
    ("darwin", "aarch64"): "aarch64-apple-darwin",
    ("windows", "x86_64"): "x86_64-pc-windows-msvc",
}


@dataclass(frozen=True, slots=True)
class HostTriple:
    """Describe the machine the launcher runs on.

    Attributes:
        arch: Normalised architecture component (``x86_64``, ``aarch64``).
        os: Normalised operating system component (``linux``, ``darwin``, ``windows``).
        triple: Full target triple used in archive names.
    """

    arch: str
    os: str
    triple: str

    def __str__(self) -> str:
        return self.triple


def detect_host(system: str | None = None, machine: str | None = None) -> HostTriple:
    """Return the :class:`HostTriple` for the running (or the given) platform.

    Args:
        system: Optional operating system name overriding :func:`platform.system`.
        machine: Optional machine name overriding :func:`platform.machine`.

    Returns:
        HostTriple: Normalised architecture, operating system and triple.

    Raises:
        ConfigError: If the architecture or operating system is unsupported.
    """

    system_raw = (system or platform.system()).lower()
    machine_raw = (machine or platform.machine()).lower()
    arch = ARCH_ALIASES.get(machine_raw)
    if arch is None:
        raise ConfigError(f"Unsupported architecture: {machine_raw}")
    os_name = OS_ALIASES.get(system_raw)
    if os_name is None:
        raise ConfigError(f"'{system_raw}' is currently an unsupported OS")
    triple = HOST_TRIPLES.get((os_name, arch))
    if triple is None:
        raise ConfigError(f"Unsupported Arch/OS: {arch}/{os_name}")
    return HostTriple(arch=arch, os=os_name, triple=triple)


def default_cache_base(env: Mapping[str, str], *, system: str | None = None) -> Path:
    """Return the per-OS user cache directory.

    Args:
        env: Environment mapping consulted for ``XDG_CACHE_HOME``, ``HOME`` and ``LocalAppData``.
        system: Optional operating system name overriding :func:`platform.system`.

    Returns:
        Path: Base cache directory before the ``toolpin`` suffix is applied.

    Raises:
        ConfigError: If the relevant environment variables are undefined.
    """

    os_name = OS_ALIASES.get((system or platform.system()).lower())
    if os_name == "linux":
        if base := env.get("XDG_CACHE_HOME"):
            return Path(base)
        if home := env.get("HOME"):
            return Path(home) / ".cache"
        raise ConfigError(
            "neither $XDG_CACHE_HOME nor $HOME are defined",
            hint="Define one of them or set TOOLPIN_CACHE.",
        )
    if os_name == "darwin":
        if home := env.get("HOME"):
            return Path(home) / "Library" / "Caches"
        raise ConfigError("$HOME is not defined", hint="Define $HOME or set TOOLPIN_CACHE.")
    if os_name == "windows":
        if local := env.get("LocalAppData") or env.get("LOCALAPPDATA"):
            return Path(local)
        raise ConfigError("%LocalAppData% is not defined", hint="Define it or set TOOLPIN_CACHE.")
    raise ConfigError("No default cache directory for this OS", hint="Set TOOLPIN_CACHE.")


def resolve_cache_root(
    env: Mapping[str, str],
    *,
    config_override: Path | None,
    system: str | None = None,
) -> Path:
    """Return the launcher cache root.

    ``TOOLPIN_CACHE`` reaches this function already merged into ``config_override``
    because environment values outrank every configuration file.

    Args:
        env: Environment mapping used for the per-OS default.
        config_override: ``cache_dir`` from the effective configuration.
        system: Optional operating system name overriding detection.

    Returns:
        Path: Directory holding every ``toolpin`` cache artefact.
    """

    if config_override is not None:
        base = config_override.expanduser()
    else:
        base = default_cache_base(env, system=system)
    return base / CACHE_SUBDIR


__all__ = ["HOST_TRIPLES", "HostTriple", "default_cache_base", "detect_host", "resolve_cache_root"]
