# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from toolpin.console import get_console_manager
from toolpin.platform import HostTriple

LINUX_HOST = HostTriple(arch="x86_64", os="linux", triple="x86_64-linux")


@pytest.fixture(autouse=True)
def _fresh_consoles() -> Iterator[None]:
    get_console_manager().reset()
    yield
    get_console_manager().reset()


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "TOOLPIN_VERSION",
        "USE_BUCK2_VERSION",
        "TOOLPIN_DOWNLOAD_URL",
        "TOOLPIN_COMPAT_CHECK",
        "TOOLPIN_COMPAT_STRICT",
        "TOOLPIN_CACHE",
        "TOOLPIN_CONFIG",
        "TOOLPIN_CONFIG_FILE",
        "TOOLPIN_SCRIPT",
        "TOOLPIN_BINARY",
        "TOOLPIN_VERBOSE",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def host() -> HostTriple:
    return LINUX_HOST


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root
