# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""``toolpin-admin``: inspect configuration and manage the cache."""

from __future__ import annotations

import json
import os
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path
from typing import TypeVar

import typer

from .. import __version__
from ..cache.store import CacheStore
from ..config.loader import load_config
from ..constants import BINARY_ENV, PROG_NAME, STAGING_MAX_AGE_SECONDS, VERBOSE_ENV
from ..errors import ToolpinError
from ..logging import configure_debug_logging, ok
from ..pipeline import LaunchContext, build_context, prepare_launch, report_failure, resolve_version
from ..platform import resolve_cache_root
from ..utils import env_flag

T = TypeVar("T")

app = typer.Typer(
    name="toolpin-admin",
    help="Inspect toolpin configuration and manage its cache.",
    add_completion=False,
    no_args_is_help=True,
)


def _environment() -> dict[str, str]:
    env = dict(os.environ)
    configure_debug_logging(env_flag(env.get(VERBOSE_ENV)))
    return env


def _guard(action: Callable[[], T]) -> T:
    try:
        return action()
    except ToolpinError as exc:
        raise typer.Exit(code=report_failure(exc)) from exc


def _context(cwd: Path | None) -> LaunchContext:
    return _guard(lambda: build_context((cwd or Path.cwd()).resolve(), _environment()))


@app.command("version")
def version_command() -> None:
    """Print the launcher version."""

    typer.echo(f"{PROG_NAME} {__version__}")


@app.command("config")
def config_command(
    cwd: Path | None = typer.Option(None, "--cwd", help="Directory to resolve configuration from."),
) -> None:
    """Print the effective configuration as JSON."""

    env = _environment()
    loaded = _guard(lambda: load_config((cwd or Path.cwd()).resolve(), env))
    payload = {
        "config": loaded.config.model_dump(mode="json"),
        "version_override": loaded.version_override,
        "sources": list(loaded.sources),
    }
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


@app.command("resolve")
def resolve_command(
    cwd: Path | None = typer.Option(None, "--cwd", help="Directory to resolve configuration from."),
) -> None:
    """Print the concrete version the launcher would run."""

    context = _context(cwd)
    version = _guard(lambda: resolve_version(context))
    typer.echo(version.raw)


@app.command("which")
def which_command(
    binary: str | None = typer.Option(None, "--binary", "-b", help="Declared binary to locate."),
    cwd: Path | None = typer.Option(None, "--cwd", help="Directory to resolve configuration from."),
) -> None:
    """Download the pinned tool if needed and print the binary path."""

    context = _context(cwd)
    if binary:
        context = replace(context, env={**context.env, BINARY_ENV: binary})
    target = _guard(lambda: prepare_launch(context, []))
    typer.echo(str(target.path))


@app.command("gc")
def gc_command(
    remove_all: bool = typer.Option(False, "--all", help="Also remove every published entry."),
    cwd: Path | None = typer.Option(None, "--cwd", help="Directory to resolve configuration from."),
) -> None:
    """Remove stale staging directories, or the whole cache with ``--all``."""

    env = _environment()
    loaded = _guard(lambda: load_config((cwd or Path.cwd()).resolve(), env))
    root = _guard(lambda: resolve_cache_root(env, config_override=loaded.config.cache_dir))
    store = CacheStore(root)
    if remove_all:
        removed = _guard(store.clear)
        ok(f"removed {removed} cached entries from {root}")
        return
    swept = store.sweep_staging(STAGING_MAX_AGE_SECONDS)
    ok(f"removed {swept} stale staging directories from {root}")


def run() -> None:
    """Console script entry point."""

    app()


__all__ = ["app", "run"]
