# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Version ordering and resolution of version specs."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Final, Protocol

from packaging.version import InvalidVersion, Version
from pydantic import BaseModel, ConfigDict

from .constants import LATEST_SENTINEL
from .errors import ResolutionError
from .logging import LOGGER

_DATE_TOKEN: Final[re.Pattern[str]] = re.compile(r"^v?(\d{4})-(\d{2})-(\d{2})")
_ZERO_VERSION: Final[Version] = Version("0")


class ReleaseEntry(BaseModel):
    """One version advertised by an upstream release index.

    Attributes:
        version: Raw version token used for templating.
        published_at: Publication timestamp reported by the index.
        draft: Whether the release is an unpublished draft.
        prerelease: Whether the release is flagged as a prerelease.
    """

    model_config = ConfigDict(frozen=True)

    version: str
    published_at: datetime | None = None
    draft: bool = False
    prerelease: bool = False


class ReleaseIndex(Protocol):
    """Pluggable source of the versions available upstream."""

    def entries(self) -> Sequence[ReleaseEntry]:
        """Return every advertised release, in upstream listing order.

        Raises:
            ResolutionError: If the index cannot be consulted.
        """


def _date_component(token: str, published_at: datetime | None) -> date:
    if match := _DATE_TOKEN.match(token):
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            pass
    if published_at is not None:
        return published_at.date()
    return date.min


def _release_component(token: str) -> Version:
    try:
        return Version(token.removeprefix("v"))
    except InvalidVersion:
        return _ZERO_VERSION


@dataclass(frozen=True, order=True, slots=True)
class ResolvedVersion:
    """Concrete version token with a total order.

    Ordering compares the calendar date (ISO token or publication date), then the
    PEP 440 release number, then the upstream listing position where earlier
    entries rank higher.
    """

    sort_key: tuple[date, Version, int] = field(repr=False)
    raw: str = field(compare=False)

    @classmethod
    def from_token(
        cls,
        token: str,
        *,
        published_at: datetime | None = None,
        position: int = 0,
    ) -> ResolvedVersion:
        """Build a resolved version for ``token``.

        Args:
            token: Raw version string.
            published_at: Optional publication timestamp for non-date tokens.
            position: Zero-based position in the upstream listing.

        Returns:
            ResolvedVersion: Comparable version wrapping ``token``.
        """

        key = (_date_component(token, published_at), _release_component(token), -position)
        return cls(sort_key=key, raw=token)

    def __str__(self) -> str:
        return self.raw


def is_latest(spec: str) -> bool:
    """Return whether ``spec`` is the ``latest`` sentinel."""

    return spec.strip().lower() == LATEST_SENTINEL


class VersionResolver:
    """Turn version specs into concrete :class:`ResolvedVersion` values.

    Args:
        index: Release index consulted only for ``latest``.
        include_prereleases: Whether prerelease entries are eligible.
        version_pattern: Optional regular expression eligible versions must match.
    """

    def __init__(
        self,
        index: ReleaseIndex,
        *,
        include_prereleases: bool = False,
        version_pattern: str | None = None,
    ) -> None:
        self._index = index
        self._include_prereleases = include_prereleases
        self._pattern = re.compile(version_pattern) if version_pattern else None

    def resolve(self, spec: str, override: str | None = None) -> ResolvedVersion:
        """Resolve ``spec`` (or a non-empty ``override``) to a concrete version.

        Args:
            spec: Version spec from the merged configuration.
            override: Environment override that wins unconditionally.

        Returns:
            ResolvedVersion: Literal token, or the newest eligible release for ``latest``.

        Raises:
            ResolutionError: If ``latest`` has no eligible candidates or the index fails.
        """

        effective = (override or "").strip() or spec.strip()
        if not effective:
            raise ResolutionError("Version spec is empty", hint="Set an explicit version.")
        if not is_latest(effective):
            LOGGER.debug("using literal version %s", effective)
            return ResolvedVersion.from_token(effective)
        return self.latest()

    def eligible(self, entries: Sequence[ReleaseEntry]) -> list[ResolvedVersion]:
        """Return the entries that may be chosen for ``latest``, as resolved versions."""

        candidates: list[ResolvedVersion] = []
        for position, entry in enumerate(entries):
            token = entry.version.strip()
            if not token or entry.draft or is_latest(token):
                continue
            if entry.prerelease and not self._include_prereleases:
                continue
            if self._pattern is not None and not self._pattern.search(token):
                continue
            candidates.append(
                ResolvedVersion.from_token(token, published_at=entry.published_at, position=position),
            )
        return candidates

    def latest(self) -> ResolvedVersion:
        """Return the maximum eligible version advertised by the index.

        Raises:
            ResolutionError: If no eligible version exists.
        """

        candidates = self.eligible(self._index.entries())
        if not candidates:
            raise ResolutionError(
                "The release index returned no eligible versions",
                hint="Check release_index settings or set an explicit version.",
            )
        chosen = max(candidates)
        LOGGER.debug("latest resolved to %s out of %d candidates", chosen.raw, len(candidates))
        return chosen


__all__ = ["ReleaseEntry", "ReleaseIndex", "ResolvedVersion", "VersionResolver", "is_latest"]
