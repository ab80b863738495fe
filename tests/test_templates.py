# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for archive pattern expansion."""

from __future__ import annotations

import pytest

from toolpin.platform import HostTriple
from toolpin.templates import archive_url, expand, unknown_placeholders, validate_pattern


def test_expand_target_placeholder(host: HostTriple) -> None:
    assert expand("tool-%target%.tar.zst", "2024-09-02", host) == "tool-x86_64-linux.tar.zst"


def test_expand_every_known_placeholder(host: HostTriple) -> None:
    result = expand("%version%/%os%-%arch%/%target%", "v1.2", host)

    assert result == "v1.2/linux-x86_64/x86_64-linux"


def test_unknown_placeholders_stay_literal(host: HostTriple) -> None:
    result = expand("tool-%flavor%-%target%.zip", "1.0", host)

    assert result == "tool-%flavor%-x86_64-linux.zip"
    assert unknown_placeholders(result) == ("flavor",)
    assert unknown_placeholders("tool-x86_64-linux.zip") == ()


@pytest.mark.parametrize(
    ("pattern", "expected_problem"),
    [
        ("buck2-%target%.zst", None),
        ("100%", None),
        ("", "empty"),
        ("buck2-%target", "unterminated"),
    ],
)
def test_validate_pattern(pattern: str, expected_problem: str | None) -> None:
    problem = validate_pattern(pattern)

    if expected_problem is None:
        assert problem is None
    else:
        assert problem is not None
        assert expected_problem in problem


def test_archive_url_joins_segments() -> None:
    url = archive_url("https://example.test/releases/", "2024-09-02", "tool.zst")

    assert url == "https://example.test/releases/2024-09-02/tool.zst"
