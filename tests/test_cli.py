# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the ``toolpin`` and ``toolpin-admin`` command lines."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from conftest import LINUX_HOST
from helpers.fakes import FakeHttpClient, zstd_bytes
from toolpin import __version__, pipeline
from toolpin.cache import CacheKey, CacheStore
from toolpin.cli import admin
from toolpin.cli import main as main_module
from toolpin.cli.main import VERSION_FLAG, main
from toolpin.constants import DEFAULT_BASE_DOWNLOAD_URL


@pytest.fixture
def cache_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    root = tmp_path / "cache"
    monkeypatch.setenv("TOOLPIN_CACHE", str(root))
    monkeypatch.setattr(pipeline, "detect_host", lambda: LINUX_HOST)
    return root


def test_version_flag_prints_launcher_and_tool_versions(
    project: Path,
    cache_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("TOOLPIN_VERSION", "2024-09-02")
    monkeypatch.chdir(project)

    code = main(["toolpin", VERSION_FLAG])

    assert code == 0
    assert capsys.readouterr().out.splitlines() == [f"toolpin {__version__}", "buck2 2024-09-02"]


def test_version_flag_reports_config_errors(
    project: Path,
    cache_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("TOOLPIN_CONFIG", "version = ")
    monkeypatch.chdir(project)

    code = main(["toolpin", VERSION_FLAG])

    assert code == 201
    assert "Could not parse" in capsys.readouterr().err


def test_arguments_are_forwarded_verbatim(
    project: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    seen: dict[str, Any] = {}

    def _fake_run(args: list[str], **kwargs: Any) -> int:
        seen["args"] = args
        seen.update(kwargs)
        return 5

    monkeypatch.setattr(main_module, "run", _fake_run)
    monkeypatch.chdir(project)

    code = main(["/usr/bin/tool-helper", "build", VERSION_FLAG, "--", "a b"])

    assert code == 5
    assert seen["args"] == ["build", VERSION_FLAG, "--", "a b"]
    assert seen["program_name"] == "/usr/bin/tool-helper"
    assert seen["cwd"] == project.resolve()


runner = CliRunner()


def test_admin_version() -> None:
    result = runner.invoke(admin.app, ["version"])

    assert result.exit_code == 0
    assert result.stdout.strip() == f"toolpin {__version__}"


def test_admin_config_dumps_effective_configuration(project: Path, cache_dir: Path) -> None:
    (project / ".toolpin.toml").write_text('version = "2024-01-01"\n', encoding="utf-8")

    result = runner.invoke(admin.app, ["config", "--cwd", str(project)])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["config"]["version"] == "2024-01-01"
    assert payload["config"]["tool_name"] == "buck2"
    assert payload["version_override"] is None
    assert any(".toolpin.toml" in source for source in payload["sources"])


def test_admin_config_reports_missing_explicit_file(
    project: Path,
    cache_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("TOOLPIN_CONFIG_FILE", str(project / "absent.toml"))

    result = runner.invoke(admin.app, ["config", "--cwd", str(project)])

    assert result.exit_code == 201


def test_admin_resolve_honours_override(project: Path, cache_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("USE_BUCK2_VERSION", "2023-03-03")

    result = runner.invoke(admin.app, ["resolve", "--cwd", str(project)])

    assert result.exit_code == 0
    assert result.stdout.strip() == "2023-03-03"


def _seed_cache(cache_dir: Path) -> CacheStore:
    store = CacheStore(cache_dir / "toolpin")
    key = CacheKey(tool="buck2", version="2024-09-02", triple=LINUX_HOST.triple, archive_name="buck2.zst")
    handle = store.begin_populate(key)
    (handle.content / "buck2").write_bytes(b"bin")
    store.publish(handle, url="https://example.com/2024-09-02/buck2.zst")
    store.begin_populate(key)
    return store


def test_admin_gc_keeps_entries_and_fresh_staging(project: Path, cache_dir: Path) -> None:
    store = _seed_cache(cache_dir)

    result = runner.invoke(admin.app, ["gc", "--cwd", str(project)])

    assert result.exit_code == 0
    assert len(list(store.iter_entries())) == 1
    assert len(list(store.staging_dir.iterdir())) == 1


def test_admin_gc_all_clears_cache(project: Path, cache_dir: Path) -> None:
    store = _seed_cache(cache_dir)

    result = runner.invoke(admin.app, ["gc", "--all", "--cwd", str(project)])

    assert result.exit_code == 0
    assert list(store.iter_entries()) == []
    assert list(store.staging_dir.iterdir()) == []


def test_admin_which_materialises_and_prints_binary(
    project: Path,
    cache_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    url = f"{DEFAULT_BASE_DOWNLOAD_URL}/2024-09-02/buck2-{LINUX_HOST.triple}.zst"
    client = FakeHttpClient({url: zstd_bytes(b"#!/bin/sh\nexit 0\n")})
    monkeypatch.setattr(pipeline, "RequestsHttpClient", lambda **_: client)
    monkeypatch.setenv("TOOLPIN_VERSION", "2024-09-02")

    result = runner.invoke(admin.app, ["which", "--cwd", str(project)])

    assert result.exit_code == 0
    binary = Path(result.stdout.strip().splitlines()[-1])
    assert binary.name == "buck2"
    assert binary.is_file()
    assert client.urls("stream") == [url]
