# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""``toolpin`` entry point forwarding every argument to the pinned tool."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Final

from .. import __version__
from ..constants import PROG_NAME, VERBOSE_ENV
from ..errors import ToolpinError
from ..logging import configure_debug_logging
from ..pipeline import build_context, report_failure, resolve_version, run
from ..utils import env_flag

VERSION_FLAG: Final[str] = "--toolpin-version"


def print_versions(env: Mapping[str, str], cwd: Path) -> int:
    """Print the launcher version and the tool version it would run.

    Args:
        env: Environment mapping captured at start-up.
        cwd: Working directory of the invocation.

    Returns:
        int: ``0`` on success, otherwise the reserved exit code of the failure.
    """

    print(f"{PROG_NAME} {__version__}", flush=True)
    configure_debug_logging(env_flag(env.get(VERBOSE_ENV)))
    try:
        context = build_context(cwd, env)
        version = resolve_version(context)
    except ToolpinError as exc:
        return report_failure(exc)
    print(f"{context.config.tool_name} {version.raw}", flush=True)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the launcher with ``argv`` (defaults to :data:`sys.argv`).

    Args:
        argv: Full argument vector including the program name.

    Returns:
        int: Exit status of the launched tool or a reserved launcher code.
    """

    raw = list(sys.argv if argv is None else argv)
    program_name = raw[0] if raw else PROG_NAME
    args = raw[1:]
    env = dict(os.environ)
    cwd = Path.cwd()
    if args[:1] == [VERSION_FLAG]:
        return print_versions(env, cwd)
    return run(args, env=env, cwd=cwd, program_name=program_name)


__all__ = ["VERSION_FLAG", "main", "print_versions"]
