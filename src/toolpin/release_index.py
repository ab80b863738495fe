# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Upstream release index clients and the short-lived ``latest`` snapshot."""

from __future__ import annotations

import os
import time
import uuid
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ValidationError

from .config.models import NetworkSettings
from .constants import RELEASE_INDEX_MAX_PAGES
from .errors import FetchError, ResolutionError
from .fetch.http import HttpClient, ensure_transport_allowed, with_retries
from .logging import LOGGER, warn
from .utils import slugify
from .versions import ReleaseEntry, ReleaseIndex

NETWORK_HINT: Final[str] = "check network or set an explicit version"
_LISTING_KEYS: Final[tuple[str, ...]] = ("releases", "versions")
_VERSION_KEYS: Final[tuple[str, ...]] = ("tag_name", "version", "name")


def _entry_from_item(item: Any) -> ReleaseEntry | None:
    if isinstance(item, str):
        return ReleaseEntry(version=item) if item.strip() else None
    if not isinstance(item, Mapping):
        return None
    version = next((item[key] for key in _VERSION_KEYS if isinstance(item.get(key), str) and item[key].strip()), None)
    if version is None:
        return None
    try:
        return ReleaseEntry(
            version=version.strip(),
            published_at=item.get("published_at"),
            draft=bool(item.get("draft", False)),
            prerelease=bool(item.get("prerelease", False)),
        )
    except ValidationError as exc:
        LOGGER.debug("skipping release %s: %s", version, exc)
        return None


def parse_index_payload(payload: Any, *, url: str) -> list[ReleaseEntry]:
    """Convert one page of an index listing into release entries.

    Accepts GitHub release objects, objects carrying ``version`` or ``name``,
    and bare strings, either as a top-level array or under ``releases`` or
    ``versions``.

    Args:
        payload: Decoded JSON document.
        url: Source URL used in error messages.

    Returns:
        list[ReleaseEntry]: Entries in listing order; malformed items are skipped.

    Raises:
        ResolutionError: If the document is not a listing.
    """

    if isinstance(payload, Mapping):
        payload = next((payload[key] for key in _LISTING_KEYS if isinstance(payload.get(key), list)), None)
    if not isinstance(payload, list):
        raise ResolutionError(f"Release index {url} did not return a list of releases")
    return [entry for item in payload if (entry := _entry_from_item(item)) is not None]


class HttpReleaseIndex:
    """Release index read from a JSON HTTP endpoint with ``Link`` pagination.

    Args:
        url: First page of the listing.
        client: HTTP transport.
        settings: Network settings bounding retries.
        max_pages: Maximum number of pages followed.
        sleep: Sleep function used between retries.
    """

    def __init__(
        self,
        url: str,
        client: HttpClient,
        *,
        settings: NetworkSettings,
        max_pages: int = RELEASE_INDEX_MAX_PAGES,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._url = url
        self._client = client
        self._settings = settings
        self._max_pages = max_pages
        self._sleep = sleep

    def entries(self) -> list[ReleaseEntry]:
        ensure_transport_allowed(self._url, allow_insecure_http=self._settings.allow_insecure_http)
        collected: list[ReleaseEntry] = []
        next_url: str | None = self._url
        pages = 0
        while next_url is not None and pages < self._max_pages:
            page_url = next_url
            try:
                payload, next_url = with_retries(
                    lambda: self._client.get_json(page_url),
                    settings=self._settings,
                    description=f"release index {page_url}",
                    sleep=self._sleep,
                )
            except FetchError as exc:
                raise ResolutionError(f"Could not query release index: {exc}", hint=NETWORK_HINT) from exc
            collected.extend(parse_index_payload(payload, url=page_url))
            pages += 1
        if next_url is not None:
            LOGGER.debug("release index truncated after %d pages", pages)
        return collected


class IndexSnapshot(BaseModel):
    """On-disk copy of a release listing."""

    fetched_at: float
    url: str | None = None
    entries: list[ReleaseEntry]


class CachedReleaseIndex:
    """Wrap another index with a per-tool snapshot trusted for a short window.

    A snapshot younger than ``ttl_seconds`` answers without network access. An
    older one is only used when the upstream query fails, and then with a
    warning naming its age.

    Args:
        inner: Index queried when the snapshot is missing or stale.
        snapshot_path: JSON file holding the snapshot.
        ttl_seconds: Validity window of the snapshot.
        url: Upstream URL recorded in the snapshot; a differing URL invalidates it.
        clock: Time source, injectable for tests.
    """

    def __init__(
        self,
        inner: ReleaseIndex,
        snapshot_path: Path,
        *,
        ttl_seconds: int,
        url: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._inner = inner
        self._path = snapshot_path
        self._ttl = ttl_seconds
        self._url = url
        self._clock = clock

    @classmethod
    def for_tool(
        cls,
        inner: ReleaseIndex,
        cache_root: Path,
        tool_name: str,
        *,
        ttl_seconds: int,
        url: str | None = None,
    ) -> CachedReleaseIndex:
        """Return a cached index storing its snapshot at ``<cache_root>/index/<tool>.json``."""

        return cls(inner, cache_root / "index" / f"{slugify(tool_name)}.json", ttl_seconds=ttl_seconds, url=url)

    def _read_snapshot(self) -> IndexSnapshot | None:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            LOGGER.debug("cannot read index snapshot %s: %s", self._path, exc)
            return None
        try:
            snapshot = IndexSnapshot.model_validate_json(text)
        except ValidationError as exc:
            LOGGER.debug("ignoring corrupt index snapshot %s: %s", self._path, exc)
            return None
        if snapshot.url != self._url:
            return None
        return snapshot

    def _write_snapshot(self, entries: Sequence[ReleaseEntry]) -> None:
        snapshot = IndexSnapshot(fetched_at=self._clock(), url=self._url, entries=list(entries))
        tmp_path = self._path.with_name(f".{self._path.name}.{uuid.uuid4().hex}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(snapshot.model_dump_json(), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            warn(f"could not save release index snapshot {self._path}: {exc}")

    def entries(self) -> list[ReleaseEntry]:
        snapshot = self._read_snapshot()
        age = None if snapshot is None else self._clock() - snapshot.fetched_at
        # A snapshot from the future means the clock moved; it is never fresh.
        if snapshot is not None and age is not None and 0 <= age < self._ttl:
            LOGGER.debug("using release index snapshot %s (age %.0fs)", self._path, age)
            return list(snapshot.entries)
        try:
            fresh = list(self._inner.entries())
        except ResolutionError as exc:
            if snapshot is None or age is None:
                raise ResolutionError(str(exc), hint=NETWORK_HINT) from exc
            warn(
                f"release index unreachable ({exc}); using a snapshot that is {_describe_age(max(age, 0.0))} old, "
                "'latest' may be out of date",
            )
            return list(snapshot.entries)
        self._write_snapshot(fresh)
        return fresh


def _describe_age(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h{minutes:02d}m"
    if minutes:
        return f"{minutes}m{secs:02d}s"
    return f"{secs}s"


__all__ = ["CachedReleaseIndex", "HttpReleaseIndex", "IndexSnapshot", "parse_index_payload"]
