# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for archive extraction."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from helpers.fakes import tar_bytes, tar_zst_bytes, zip_bytes, zstd_bytes
from toolpin.config.models import PackageType
from toolpin.errors import CorruptArchiveError
from toolpin.fetch.archives import extractor_for

SCRIPT = b"#!/bin/sh\nexit 0\n"

pytestmark = pytest.mark.skipif(os.name != "posix", reason="checks POSIX permission bits")


def _archive(tmp_path: Path, name: str, payload: bytes) -> tuple[Path, Path]:
    archive = tmp_path / name
    archive.write_bytes(payload)
    destination = tmp_path / "content"
    destination.mkdir()
    return archive, destination


def _is_executable(path: Path) -> bool:
    return bool(path.stat().st_mode & stat.S_IXUSR)


def test_zstd_single_file_is_decompressed_and_executable(tmp_path: Path) -> None:
    archive, destination = _archive(tmp_path, "buck2.zst", zstd_bytes(SCRIPT))

    extractor_for(PackageType.ZSTD_SINGLE_FILE).extract(archive, destination, "buck2")

    assert (destination / "buck2").read_bytes() == SCRIPT
    assert _is_executable(destination / "buck2")


def test_single_file_is_copied_to_binary_path(tmp_path: Path) -> None:
    archive, destination = _archive(tmp_path, "tool", SCRIPT)

    extractor_for(PackageType.SINGLE_FILE).extract(archive, destination, "bin/tool")

    assert (destination / "bin" / "tool").read_bytes() == SCRIPT
    assert _is_executable(destination / "bin" / "tool")


def test_tar_gz_preserves_modes(tmp_path: Path) -> None:
    payload = tar_bytes({"bin/tool": (SCRIPT, 0o755), "README": (b"docs", 0o644)}, mode="w:gz")
    archive, destination = _archive(tmp_path, "tool.tar.gz", payload)

    extractor_for(PackageType.TAR_GZ).extract(archive, destination, "bin/tool")

    assert stat.S_IMODE((destination / "bin" / "tool").stat().st_mode) == 0o755
    assert not _is_executable(destination / "README")


def test_plain_tar(tmp_path: Path) -> None:
    archive, destination = _archive(tmp_path, "tool.tar", tar_bytes({"tool": (SCRIPT, 0o755)}))

    extractor_for(PackageType.TAR).extract(archive, destination, "tool")

    assert (destination / "tool").read_bytes() == SCRIPT


def test_tar_zst_is_streamed(tmp_path: Path) -> None:
    payload = tar_zst_bytes({"tool/bin/tool": (SCRIPT, 0o755), "tool/lib/data.txt": (b"x", 0o644)})
    archive, destination = _archive(tmp_path, "tool.tar.zst", payload)

    extractor_for(PackageType.TAR_ZST).extract(archive, destination, "tool/bin/tool")

    assert _is_executable(destination / "tool" / "bin" / "tool")
    assert (destination / "tool" / "lib" / "data.txt").read_bytes() == b"x"


def test_zip_restores_modes(tmp_path: Path) -> None:
    payload = zip_bytes({"tool/run": (SCRIPT, 0o755), "tool/notes.txt": (b"n", 0o644)})
    archive, destination = _archive(tmp_path, "tool.zip", payload)

    extractor_for(PackageType.ZIP).extract(archive, destination, "tool/run")

    assert stat.S_IMODE((destination / "tool" / "run").stat().st_mode) == 0o755
    assert stat.S_IMODE((destination / "tool" / "notes.txt").stat().st_mode) == 0o644


@pytest.mark.parametrize(
    "package_type",
    [PackageType.ZSTD_SINGLE_FILE, PackageType.TAR_GZ, PackageType.TAR_ZST, PackageType.ZIP],
)
def test_corrupt_payload_raises(tmp_path: Path, package_type: PackageType) -> None:
    archive, destination = _archive(tmp_path, "broken", b"definitely not an archive" * 10)

    with pytest.raises(CorruptArchiveError) as excinfo:
        extractor_for(package_type).extract(archive, destination, "tool")

    assert excinfo.value.hint


def test_tar_member_escaping_destination_is_rejected(tmp_path: Path) -> None:
    archive, destination = _archive(tmp_path, "evil.tar", tar_bytes({"../escape": (b"x", 0o644)}))

    with pytest.raises(CorruptArchiveError):
        extractor_for(PackageType.TAR).extract(archive, destination, "tool")

    assert not (tmp_path / "escape").exists()


def test_zip_member_escaping_destination_is_rejected(tmp_path: Path) -> None:
    archive, destination = _archive(tmp_path, "evil.zip", zip_bytes({"../escape": (b"x", 0o644)}))

    with pytest.raises(CorruptArchiveError):
        extractor_for(PackageType.ZIP).extract(archive, destination, "tool")

    assert not (tmp_path / "escape").exists()


def test_single_file_member_must_be_relative(tmp_path: Path) -> None:
    archive, destination = _archive(tmp_path, "tool", SCRIPT)

    with pytest.raises(CorruptArchiveError):
        extractor_for(PackageType.SINGLE_FILE).extract(archive, destination, "../tool")


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("buck2-x86_64-unknown-linux-gnu.zst", PackageType.ZSTD_SINGLE_FILE),
        ("tool-1.0.tar.zst", PackageType.TAR_ZST),
        ("tool-1.0.tgz", PackageType.TAR_GZ),
        ("tool-1.0.TAR.GZ", PackageType.TAR_GZ),
        ("tool.tar", PackageType.TAR),
        ("tool.zip", PackageType.ZIP),
        ("tool", PackageType.SINGLE_FILE),
    ],
)
def test_package_type_is_inferred_from_suffix(name: str, expected: PackageType) -> None:
    assert PackageType.infer(name) is expected
