# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the HTTP release index and its snapshot cache."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from helpers.fakes import FakeHttpClient, FakeReleaseIndex
from toolpin.config.models import NetworkSettings
from toolpin.errors import ConfigError, FetchNetworkError, ResolutionError
from toolpin.release_index import NETWORK_HINT, CachedReleaseIndex, HttpReleaseIndex, parse_index_payload
from toolpin.versions import ReleaseEntry

INDEX_URL = "https://api.example.com/releases"
SETTINGS = NetworkSettings(max_retries=2, backoff_seconds=0.1)


class _Clock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _no_sleep(_: float) -> None:
    return None


def test_parse_github_release_objects() -> None:
    payload = [
        {"tag_name": "2024-09-02", "published_at": "2024-09-02T10:00:00Z", "prerelease": False},
        {"tag_name": "latest", "draft": False},
        {"tag_name": "2024-08-01", "draft": True},
        {"id": 7},
    ]

    entries = parse_index_payload(payload, url=INDEX_URL)

    assert [entry.version for entry in entries] == ["2024-09-02", "latest", "2024-08-01"]
    assert entries[0].published_at is not None
    assert entries[2].draft is True


@pytest.mark.parametrize(
    "payload",
    [
        {"releases": [{"version": "1.0"}, {"name": "1.1"}]},
        {"versions": ["1.0", "1.1"]},
        ["1.0", "1.1", "  "],
    ],
)
def test_parse_alternative_listing_shapes(payload: object) -> None:
    assert [entry.version for entry in parse_index_payload(payload, url=INDEX_URL)] == ["1.0", "1.1"]


def test_parse_rejects_non_listing() -> None:
    with pytest.raises(ResolutionError):
        parse_index_payload({"message": "rate limited"}, url=INDEX_URL)


def test_http_index_follows_next_links() -> None:
    client = FakeHttpClient(
        {
            INDEX_URL: (["2024-09-02"], f"{INDEX_URL}?page=2"),
            f"{INDEX_URL}?page=2": (["2024-08-01"], None),
        },
    )

    entries = HttpReleaseIndex(INDEX_URL, client, settings=SETTINGS).entries()

    assert [entry.version for entry in entries] == ["2024-09-02", "2024-08-01"]
    assert client.urls("json") == [INDEX_URL, f"{INDEX_URL}?page=2"]


def test_http_index_stops_after_max_pages() -> None:
    client = FakeHttpClient(
        {
            INDEX_URL: (["a"], f"{INDEX_URL}?page=2"),
            f"{INDEX_URL}?page=2": (["b"], f"{INDEX_URL}?page=3"),
        },
    )

    entries = HttpReleaseIndex(INDEX_URL, client, settings=SETTINGS, max_pages=2).entries()

    assert [entry.version for entry in entries] == ["a", "b"]
    assert len(client.calls) == 2


def test_http_index_retries_transient_failures() -> None:
    client = FakeHttpClient({INDEX_URL: [FetchNetworkError("reset"), (["2024-01-01"], None)]})
    delays: list[float] = []

    entries = HttpReleaseIndex(INDEX_URL, client, settings=SETTINGS, sleep=delays.append).entries()

    assert [entry.version for entry in entries] == ["2024-01-01"]
    assert delays == [0.1]


def test_http_index_failure_becomes_resolution_error() -> None:
    client = FakeHttpClient({INDEX_URL: [FetchNetworkError("unreachable")]})

    with pytest.raises(ResolutionError) as excinfo:
        HttpReleaseIndex(INDEX_URL, client, settings=SETTINGS, sleep=_no_sleep).entries()

    assert excinfo.value.hint == NETWORK_HINT
    assert len(client.calls) == SETTINGS.max_retries + 1


def test_http_index_refuses_plain_http() -> None:
    client = FakeHttpClient()

    with pytest.raises(ConfigError):
        HttpReleaseIndex("http://api.example.com/releases", client, settings=SETTINGS).entries()

    assert client.calls == []


def _cached(inner: FakeReleaseIndex, path: Path, clock: _Clock, *, url: str = INDEX_URL) -> CachedReleaseIndex:
    return CachedReleaseIndex(inner, path, ttl_seconds=900, url=url, clock=clock)


def test_fresh_snapshot_answers_without_querying(tmp_path: Path) -> None:
    snapshot = tmp_path / "index" / "buck2.json"
    clock = _Clock(10_000.0)
    inner = FakeReleaseIndex(["2024-09-02"])

    first = _cached(inner, snapshot, clock).entries()
    clock.now += 60
    second = _cached(inner, snapshot, clock).entries()

    assert [entry.version for entry in first] == ["2024-09-02"]
    assert second == first
    assert inner.calls == 1
    assert json.loads(snapshot.read_text(encoding="utf-8"))["url"] == INDEX_URL


def test_stale_snapshot_is_refreshed(tmp_path: Path) -> None:
    snapshot = tmp_path / "buck2.json"
    clock = _Clock(10_000.0)
    _cached(FakeReleaseIndex(["2024-01-01"]), snapshot, clock).entries()
    clock.now += 901
    newer = FakeReleaseIndex(["2024-02-02"])

    entries = _cached(newer, snapshot, clock).entries()

    assert [entry.version for entry in entries] == ["2024-02-02"]
    assert newer.calls == 1


def test_snapshot_from_the_future_is_treated_as_stale(tmp_path: Path) -> None:
    snapshot = tmp_path / "buck2.json"
    clock = _Clock(10_000.0)
    _cached(FakeReleaseIndex(["2024-01-01"]), snapshot, clock).entries()
    clock.now -= 3600
    newer = FakeReleaseIndex(["2024-02-02"])

    entries = _cached(newer, snapshot, clock).entries()

    assert [entry.version for entry in entries] == ["2024-02-02"]
    assert newer.calls == 1


def test_stale_snapshot_is_used_when_network_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    snapshot = tmp_path / "buck2.json"
    clock = _Clock(10_000.0)
    _cached(FakeReleaseIndex(["2024-01-01"]), snapshot, clock).entries()
    clock.now += 2 * 3600
    failing = FakeReleaseIndex(error=ResolutionError("offline"))

    entries = _cached(failing, snapshot, clock).entries()

    assert [entry.version for entry in entries] == ["2024-01-01"]
    assert "2h00m old" in capsys.readouterr().err


def test_network_failure_without_snapshot_is_fatal(tmp_path: Path) -> None:
    failing = FakeReleaseIndex(error=ResolutionError("offline"))

    with pytest.raises(ResolutionError) as excinfo:
        _cached(failing, tmp_path / "buck2.json", _Clock(0.0)).entries()

    assert excinfo.value.hint == NETWORK_HINT


def test_snapshot_for_other_url_is_ignored(tmp_path: Path) -> None:
    snapshot = tmp_path / "buck2.json"
    clock = _Clock(10_000.0)
    _cached(FakeReleaseIndex(["2024-01-01"]), snapshot, clock, url="https://old.example/releases").entries()
    inner = FakeReleaseIndex(["2024-05-05"])

    entries = _cached(inner, snapshot, clock).entries()

    assert [entry.version for entry in entries] == ["2024-05-05"]
    assert inner.calls == 1


def test_corrupt_snapshot_is_ignored(tmp_path: Path) -> None:
    snapshot = tmp_path / "buck2.json"
    snapshot.write_text("{not json", encoding="utf-8")
    inner = FakeReleaseIndex([ReleaseEntry(version="2024-03-03")])

    entries = _cached(inner, snapshot, _Clock(0.0)).entries()

    assert [entry.version for entry in entries] == ["2024-03-03"]


def test_for_tool_places_snapshot_under_index_dir(tmp_path: Path) -> None:
    cached = CachedReleaseIndex.for_tool(FakeReleaseIndex(["1"]), tmp_path, "buck2", ttl_seconds=900, url=INDEX_URL)

    cached.entries()

    assert (tmp_path / "index" / "buck2.json").is_file()
