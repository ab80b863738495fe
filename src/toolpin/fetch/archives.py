# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Archive codecs turning a downloaded file into an extracted directory."""

from __future__ import annotations

import gzip
import shutil
import stat
import tarfile
import zipfile
import zlib
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Final, Protocol

import zstandard

from ..config.models import PackageType
from ..errors import CacheError, CorruptArchiveError

_DECODE_ERRORS: Final[tuple[type[Exception], ...]] = (
    tarfile.TarError,
    zipfile.BadZipFile,
    zstandard.ZstdError,
    gzip.BadGzipFile,
    zlib.error,
    EOFError,
)
_PERMISSION_MASK: Final[int] = 0o777


class Extractor(Protocol):
    """Unpack one archive format into a directory."""

    def extract(self, archive: Path, destination: Path, member_name: str) -> None:
        """Extract ``archive`` into ``destination``.

        Args:
            archive: Downloaded archive file.
            destination: Empty directory receiving the content.
            member_name: Relative path single-file payloads are written to.

        Raises:
            CorruptArchiveError: If the archive cannot be decoded or is unsafe.
        """


def _make_executable(path: Path) -> None:
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def _safe_target(destination: Path, member_name: str) -> Path:
    relative = PurePosixPath(member_name.replace("\\", "/"))
    if relative.is_absolute() or ".." in relative.parts or not relative.parts:
        raise CorruptArchiveError(f"Unsafe path detected in archive: {member_name}")
    return destination.joinpath(*relative.parts)


@contextmanager
def _decoding(archive: Path) -> Iterator[None]:
    try:
        yield
    except CorruptArchiveError:
        raise
    except _DECODE_ERRORS as exc:
        raise CorruptArchiveError(
            f"{archive.name} is corrupt or not in the expected format: {exc}",
            hint="Check package_type and archive_pattern; the download is discarded.",
        ) from exc
    except OSError as exc:
        raise CacheError(f"Cannot extract {archive.name}: {exc}") from exc


class _SingleFileExtractor:
    """Write the (optionally decompressed) payload to the binary path."""

    def __init__(self, copy: Callable[[BinaryIO, BinaryIO], object]) -> None:
        self._copy = copy

    def extract(self, archive: Path, destination: Path, member_name: str) -> None:
        target = _safe_target(destination, member_name)
        with _decoding(archive):
            target.parent.mkdir(parents=True, exist_ok=True)
            with archive.open("rb") as source, target.open("wb") as sink:
                self._copy(source, sink)
            _make_executable(target)


def _copy_zstd(source: BinaryIO, sink: BinaryIO) -> object:
    return zstandard.ZstdDecompressor().copy_stream(source, sink)


class _TarExtractor:
    """Extract every member with the ``data`` filter, preserving modes."""

    def __init__(self, mode: str) -> None:
        self._mode = mode

    def extract(self, archive: Path, destination: Path, member_name: str) -> None:
        with _decoding(archive), tarfile.open(archive, mode=self._mode) as handle:
            handle.extractall(path=destination, filter="data")


class _TarZstdExtractor:
    """Stream a zstd-compressed tarball through :mod:`tarfile`."""

    def extract(self, archive: Path, destination: Path, member_name: str) -> None:
        with (
            _decoding(archive),
            archive.open("rb") as raw,
            zstandard.ZstdDecompressor().stream_reader(raw) as reader,
            tarfile.open(fileobj=reader, mode="r|") as handle,
        ):
            handle.extractall(path=destination, filter="data")


class _ZipExtractor:
    """Extract zip members, restoring POSIX modes from external attributes."""

    def extract(self, archive: Path, destination: Path, member_name: str) -> None:
        with _decoding(archive), zipfile.ZipFile(archive) as handle:
            for info in handle.infolist():
                target = _safe_target(destination, info.filename)
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with handle.open(info) as source, target.open("wb") as sink:
                    shutil.copyfileobj(source, sink)
                mode = (info.external_attr >> 16) & _PERMISSION_MASK
                if mode:
                    target.chmod(mode)


EXTRACTORS: Final[dict[PackageType, Extractor]] = {
    PackageType.SINGLE_FILE: _SingleFileExtractor(shutil.copyfileobj),
    PackageType.ZSTD_SINGLE_FILE: _SingleFileExtractor(_copy_zstd),
    PackageType.TAR: _TarExtractor("r:"),
    PackageType.TAR_GZ: _TarExtractor("r:gz"),
    PackageType.TAR_ZST: _TarZstdExtractor(),
    PackageType.ZIP: _ZipExtractor(),
}


def extractor_for(package_type: PackageType) -> Extractor:
    """Return the extractor registered for ``package_type``."""

    return EXTRACTORS[package_type]


__all__ = ["EXTRACTORS", "Extractor", "extractor_for"]
