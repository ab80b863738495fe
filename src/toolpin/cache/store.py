# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Content-addressed on-disk cache with staging and atomic publication."""

from __future__ import annotations

import errno
import hashlib
import os
import shutil
import time
import uuid
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path, PurePosixPath
from typing import Final

from pydantic import BaseModel, ValidationError

from ..errors import CacheError
from ..logging import LOGGER, warn
from ..utils import slugify

ENTRIES_DIRNAME: Final[str] = "entries"
STAGING_DIRNAME: Final[str] = ".staging"
DOWNLOAD_DIRNAME: Final[str] = "download"
CONTENT_DIRNAME: Final[str] = "content"
MARKER_FILENAME: Final[str] = ".toolpin-entry.json"
_RACE_ERRNOS: Final[frozenset[int]] = frozenset({errno.EEXIST, errno.ENOTEMPTY, errno.EACCES, errno.EPERM})


def _segment(value: str) -> str:
    """Slugify ``value``, suffixing a digest when characters had to be replaced."""

    slug = slugify(value)
    if slug == value:
        return slug
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:8]
    return f"{slug}-{digest}"


@dataclass(frozen=True, slots=True)
class CacheKey:
    """Identity of one materialised archive.

    Attributes:
        tool: Tool name.
        version: Raw resolved version token.
        triple: Host triple.
        archive_name: Expanded archive file name.
    """

    tool: str
    version: str
    triple: str
    archive_name: str

    @property
    def relative_path(self) -> PurePosixPath:
        """Return ``tool/version/triple/archive_name`` with every segment slugified."""

        return PurePosixPath(*(_segment(part) for part in (self.tool, self.version, self.triple, self.archive_name)))

    @property
    def slug(self) -> str:
        """Return the key flattened into one filesystem-safe name."""

        return "-".join(self.relative_path.parts)


class EntryMarker(BaseModel):
    """Completion marker written into every published entry."""

    tool: str
    version: str
    triple: str
    archive_name: str
    url: str
    published_at: datetime


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Published, immutable cache directory."""

    key: CacheKey
    path: Path
    marker: EntryMarker

    def binary_path(self, relative: str) -> Path:
        """Return the absolute location of ``relative`` inside the entry."""

        return self.path / relative


@dataclass(frozen=True, slots=True)
class StagingHandle:
    """Private working area used while populating one key.

    Attributes:
        key: Key being populated.
        root: Staging directory, never visible to :meth:`CacheStore.lookup`.
    """

    key: CacheKey
    root: Path

    @property
    def download(self) -> Path:
        """Directory receiving the raw archive."""

        return self.root / DOWNLOAD_DIRNAME

    @property
    def content(self) -> Path:
        """Directory receiving the extracted tree; renamed into place on publish."""

        return self.root / CONTENT_DIRNAME

    def discard(self) -> None:
        """Remove the staging directory and everything in it."""

        shutil.rmtree(self.root, ignore_errors=True)


def _write_durably(path: Path, text: str) -> None:
    with path.open("w", encoding="utf-8") as handle:
        handle.write(text)
        handle.flush()
        os.fsync(handle.fileno())


class CacheStore:
    """Cache rooted at ``root`` holding ``entries/`` and ``.staging/``.

    Publication is a single directory rename, so readers observe either no
    entry or a complete one. Racing writers are tolerated: the first rename
    wins and later ones discard their own staging.
    """

    def __init__(self, root: Path, *, clock: Callable[[], float] = time.time) -> None:
        self.root = root
        self._clock = clock

    @property
    def entries_dir(self) -> Path:
        return self.root / ENTRIES_DIRNAME

    @property
    def staging_dir(self) -> Path:
        return self.root / STAGING_DIRNAME

    def entry_path(self, key: CacheKey) -> Path:
        """Return the final location of ``key``."""

        return self.entries_dir.joinpath(*key.relative_path.parts)

    def lookup(self, key: CacheKey) -> CacheEntry | None:
        """Return the published entry for ``key``, or ``None``.

        Directories without a readable completion marker are ignored.
        """

        path = self.entry_path(key)
        marker_path = path / MARKER_FILENAME
        try:
            text = marker_path.read_text(encoding="utf-8")
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as exc:
            raise CacheError(f"Cannot read cache marker {marker_path}: {exc}") from exc
        try:
            marker = EntryMarker.model_validate_json(text)
        except ValidationError as exc:
            LOGGER.debug("ignoring cache entry with corrupt marker %s: %s", marker_path, exc)
            return None
        return CacheEntry(key=key, path=path, marker=marker)

    def begin_populate(self, key: CacheKey) -> StagingHandle:
        """Allocate a uniquely named staging area for ``key``.

        Raises:
            CacheError: If the staging directories cannot be created.
        """

        handle = StagingHandle(key=key, root=self.staging_dir / f"{uuid.uuid4().hex}-{key.slug}")
        try:
            handle.download.mkdir(parents=True)
            handle.content.mkdir()
        except OSError as exc:
            raise CacheError(
                f"Cannot create staging directory under {self.staging_dir}: {exc}",
                hint="Check permissions and free space, or set TOOLPIN_CACHE.",
            ) from exc
        LOGGER.debug("staging %s in %s", key.slug, handle.root)
        return handle

    def publish(self, handle: StagingHandle, *, url: str) -> CacheEntry:
        """Atomically move ``handle.content`` to its final location.

        The marker is flushed to disk before the rename. A directory already at
        the final location without a valid marker is evicted first.

        Args:
            handle: Fully populated staging handle.
            url: Source URL recorded in the completion marker.

        Returns:
            CacheEntry: The published entry; when another process won the race
            its entry is returned and this handle is discarded.

        Raises:
            CacheError: If the marker cannot be written or the rename fails for
                a reason other than a lost race.
        """

        key = handle.key
        marker = EntryMarker(
            tool=key.tool,
            version=key.version,
            triple=key.triple,
            archive_name=key.archive_name,
            url=url,
            published_at=datetime.now(UTC),
        )
        final = self.entry_path(key)
        try:
            _write_durably(handle.content / MARKER_FILENAME, marker.model_dump_json(indent=2))
            final.parent.mkdir(parents=True, exist_ok=True)
            self._rename_into_place(handle, final)
        except CacheError:
            self.discard(handle)
            raise
        except OSError as exc:
            winner = self.lookup(key)
            if winner is not None and (exc.errno in _RACE_ERRNOS or isinstance(exc, FileExistsError)):
                LOGGER.debug("lost publish race for %s; using existing entry", key.slug)
                self.discard(handle)
                return winner
            self.discard(handle)
            raise CacheError(
                f"Cannot publish cache entry {final}: {exc}",
                hint="Check permissions and free space, or set TOOLPIN_CACHE.",
            ) from exc
        self.discard(handle)
        LOGGER.debug("published %s", final)
        return CacheEntry(key=key, path=final, marker=marker)

    def _rename_into_place(self, handle: StagingHandle, final: Path) -> None:
        """Rename ``handle.content`` onto ``final``, replacing an incomplete entry once.

        A directory at ``final`` without a valid marker can only be left over
        from a crash or a truncated marker, so it is moved aside and the
        rename retried.
        """

        try:
            os.rename(handle.content, final)
        except OSError:
            if not final.is_dir() or self.lookup(handle.key) is not None:
                raise
            warn(f"replacing incomplete cache entry {final}")
            self._bury(final, label=f"incomplete-{handle.key.slug}")
            os.rename(handle.content, final)

    def discard(self, handle: StagingHandle) -> None:
        """Remove a staging area and everything in it."""

        handle.discard()

    def evict(self, entry: CacheEntry) -> None:
        """Remove a published entry by first moving it out of ``entries/``.

        Raises:
            CacheError: If the entry cannot be moved aside.
        """

        self._bury(entry.path, label=entry.key.slug)
        LOGGER.debug("evicted %s", entry.path)

    def _bury(self, path: Path, *, label: str) -> None:
        graveyard = self.staging_dir / f"{uuid.uuid4().hex}-evicted-{label}"
        try:
            self.staging_dir.mkdir(parents=True, exist_ok=True)
            os.rename(path, graveyard)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise CacheError(f"Cannot remove cache entry {path}: {exc}") from exc
        shutil.rmtree(graveyard, ignore_errors=True)

    def _iter_staging(self) -> Iterator[Path]:
        if not self.staging_dir.is_dir():
            return
        yield from (child for child in self.staging_dir.iterdir() if child.is_dir())

    def sweep_staging(self, max_age: float) -> int:
        """Remove staging directories older than ``max_age`` seconds.

        Args:
            max_age: Minimum age in seconds; ``0`` removes every staging directory.

        Returns:
            int: Number of directories removed.
        """

        now = self._clock()
        removed = 0
        for child in self._iter_staging():
            try:
                age = now - child.stat().st_mtime
            except FileNotFoundError:
                continue
            if max_age > 0 and age < max_age:
                continue
            shutil.rmtree(child, ignore_errors=True)
            removed += 1
        if removed:
            LOGGER.debug("removed %d stale staging directories", removed)
        return removed

    def iter_entries(self) -> Iterator[Path]:
        """Yield every published entry directory."""

        if not self.entries_dir.is_dir():
            return
        for marker in sorted(self.entries_dir.rglob(MARKER_FILENAME)):
            yield marker.parent

    def clear(self) -> int:
        """Evict every published entry and sweep all staging directories.

        Returns:
            int: Number of published entries removed.
        """

        removed = 0
        for path in list(self.iter_entries()):
            self._bury(path, label="gc")
            removed += 1
        self.sweep_staging(0)
        return removed


__all__ = [
    "CONTENT_DIRNAME",
    "CacheEntry",
    "CacheKey",
    "CacheStore",
    "DOWNLOAD_DIRNAME",
    "EntryMarker",
    "MARKER_FILENAME",
    "StagingHandle",
]
