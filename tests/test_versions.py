# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for version ordering and resolution."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from helpers.fakes import FakeReleaseIndex
from toolpin.errors import ResolutionError
from toolpin.versions import ReleaseEntry, ResolvedVersion, VersionResolver, is_latest


def test_latest_picks_newest_date_token() -> None:
    index = FakeReleaseIndex(["2024-08-01", "latest", "2024-09-02", "2024-07-15"])

    resolved = VersionResolver(index).resolve("latest")

    assert resolved.raw == "2024-09-02"
    assert str(resolved) == "2024-09-02"
    assert index.calls == 1


def test_literal_spec_never_queries_the_index() -> None:
    index = FakeReleaseIndex(error=AssertionError("index must not be queried"))

    resolved = VersionResolver(index).resolve("2023-12-25")

    assert resolved.raw == "2023-12-25"
    assert index.calls == 0


def test_override_wins_over_latest_without_index_query() -> None:
    index = FakeReleaseIndex(["2024-09-02"])

    resolved = VersionResolver(index).resolve("latest", override="2021-01-01")

    assert resolved.raw == "2021-01-01"
    assert index.calls == 0


def test_blank_override_falls_back_to_spec() -> None:
    index = FakeReleaseIndex(["2024-09-02"])

    assert VersionResolver(index).resolve("latest", override="  ").raw == "2024-09-02"


def test_drafts_prereleases_and_latest_tag_are_ineligible() -> None:
    index = FakeReleaseIndex(
        [
            ReleaseEntry(version="2024-10-01", draft=True),
            ReleaseEntry(version="2024-09-15", prerelease=True),
            ReleaseEntry(version="LATEST"),
            ReleaseEntry(version="2024-09-01"),
        ],
    )

    assert VersionResolver(index).resolve("latest").raw == "2024-09-01"
    assert VersionResolver(index, include_prereleases=True).resolve("latest").raw == "2024-09-15"


def test_version_pattern_filters_candidates() -> None:
    index = FakeReleaseIndex(["nightly-2024-10-01", "2024-09-01", "2024-08-01"])

    resolver = VersionResolver(index, version_pattern=r"^\d{4}-")

    assert resolver.resolve("latest").raw == "2024-09-01"


def test_no_eligible_versions_is_a_resolution_error() -> None:
    index = FakeReleaseIndex([ReleaseEntry(version="2024-01-01", draft=True), "latest"])

    with pytest.raises(ResolutionError) as excinfo:
        VersionResolver(index).resolve("latest")

    assert excinfo.value.hint


def test_empty_spec_is_rejected() -> None:
    with pytest.raises(ResolutionError):
        VersionResolver(FakeReleaseIndex()).resolve("   ")


def test_release_numbers_compare_numerically() -> None:
    published = datetime(2024, 5, 1, tzinfo=UTC)
    older = ResolvedVersion.from_token("v1.2.0", published_at=published)
    newer = ResolvedVersion.from_token("v1.10.0", published_at=published)

    assert newer > older


def test_publication_date_outranks_release_number() -> None:
    early = ResolvedVersion.from_token("v2.0.0", published_at=datetime(2023, 1, 1, tzinfo=UTC))
    late = ResolvedVersion.from_token("v1.0.0", published_at=datetime(2024, 1, 1, tzinfo=UTC))

    assert late > early


def test_earlier_listing_position_breaks_ties() -> None:
    index = FakeReleaseIndex(["build-a", "build-b"])

    assert VersionResolver(index).resolve("latest").raw == "build-a"


def test_latest_sentinel_is_case_insensitive() -> None:
    assert is_latest("latest")
    assert is_latest(" LaTeSt ")
    assert not is_latest("2024-01-01")

    index = FakeReleaseIndex(["2024-02-02"])
    assert VersionResolver(index).resolve("LATEST").raw == "2024-02-02"
