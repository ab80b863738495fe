# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Binary selection and process replacement."""

from __future__ import annotations

import os

# Bandit: the launched binary comes from the verified cache entry and is
# started without a shell.
import subprocess  # nosec B404
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePath

from .cache.store import CacheEntry
from .config.models import BinarySpec
from .constants import SIGNAL_EXIT_BASE
from .errors import AmbiguousBinaryError, MissingExecutableError, UnknownBinaryError
from .logging import LOGGER

ExecFunction = Callable[[str, list[str]], object]


@dataclass(frozen=True, slots=True)
class BinarySelection:
    """Inputs that may pick one of several declared binaries.

    Attributes:
        requested: Value of ``TOOLPIN_BINARY``.
        script_mode: Whether ``TOOLPIN_SCRIPT`` asked for script-style invocation.
        program_name: Name the launcher was invoked under (``argv[0]``).
        default_binary: ``default_binary`` from the configuration.
        require_selection: Refuse the first-declared fallback.
    """

    requested: str | None = None
    script_mode: bool = False
    program_name: str | None = None
    default_binary: str | None = None
    require_selection: bool = False


@dataclass(frozen=True, slots=True)
class LaunchTarget:
    """Concrete executable plus the arguments forwarded to it."""

    binary: BinarySpec
    path: Path
    args: tuple[str, ...]


def _find(binaries: Sequence[BinarySpec], name: str) -> BinarySpec | None:
    return next((binary for binary in binaries if binary.name == name), None)


def _declared(binaries: Sequence[BinarySpec]) -> str:
    return ", ".join(binary.name for binary in binaries)


def choose_binary(
    binaries: Sequence[BinarySpec],
    selection: BinarySelection,
    args: Sequence[str],
) -> BinarySpec:
    """Pick the binary to run following the selection precedence.

    ``TOOLPIN_BINARY`` wins, then script mode (the stem of the first forwarded
    argument), then a multi-call program name, then ``default_binary``, then the
    first declared binary unless explicit selection is required.

    Args:
        binaries: Declared binaries in configuration order.
        selection: Selection inputs collected by the caller.
        args: Arguments that will be forwarded to the binary.

    Returns:
        BinarySpec: Chosen binary.

    Raises:
        UnknownBinaryError: If an explicit selector names an undeclared binary.
        AmbiguousBinaryError: If several binaries are declared and nothing selects one.
    """

    if selection.requested:
        chosen = _find(binaries, selection.requested)
        if chosen is None:
            raise UnknownBinaryError(
                f"TOOLPIN_BINARY={selection.requested!r} is not declared",
                hint=f"Declared binaries: {_declared(binaries)}",
            )
        return chosen
    if selection.script_mode:
        if not args:
            raise UnknownBinaryError("TOOLPIN_SCRIPT is set but no script path was passed")
        stem = PurePath(args[0]).stem
        chosen = _find(binaries, stem)
        if chosen is None:
            raise UnknownBinaryError(
                f"Script {args[0]!r} does not name a declared binary",
                hint=f"Rename the script after one of: {_declared(binaries)}",
            )
        return chosen
    if selection.program_name:
        program = PurePath(selection.program_name).name
        for candidate in (program, PurePath(program).stem):
            if (chosen := _find(binaries, candidate)) is not None:
                return chosen
    if selection.default_binary:
        chosen = _find(binaries, selection.default_binary)
        if chosen is not None:
            return chosen
    if len(binaries) > 1 and selection.require_selection:
        raise AmbiguousBinaryError(
            f"{len(binaries)} binaries are declared and none was selected",
            hint=f"Set TOOLPIN_BINARY to one of: {_declared(binaries)}",
        )
    return binaries[0]


def is_executable(path: Path) -> bool:
    """Return whether ``path`` is a regular file the current user may execute."""

    if not path.is_file():
        return False
    if os.name == "nt":
        return True
    return os.access(path, os.X_OK)


def select_binary(
    entry: CacheEntry,
    binaries: Sequence[BinarySpec],
    selection: BinarySelection,
    args: Sequence[str],
) -> LaunchTarget:
    """Resolve the executable to run from ``entry``.

    Args:
        entry: Published cache entry.
        binaries: Declared binaries in configuration order.
        selection: Selection inputs collected by the caller.
        args: Arguments forwarded verbatim to the binary.

    Returns:
        LaunchTarget: Executable path and forwarded arguments.

    Raises:
        MissingExecutableError: If the chosen path is absent or not executable.
    """

    binary = choose_binary(binaries, selection, args)
    path = entry.binary_path(binary.path)
    if not is_executable(path):
        raise MissingExecutableError(
            f"{binary.name} is missing or not executable at {path}",
            hint=f"The cache entry looks corrupt; remove {entry.path} and retry.",
        )
    return LaunchTarget(binary=binary, path=path, args=tuple(args))


def exit_status(returncode: int) -> int:
    """Map a child return code to the launcher's exit status (signal N becomes 128 + N)."""

    if returncode < 0:
        return SIGNAL_EXIT_BASE - returncode
    return returncode


def exec_binary(
    path: Path,
    args: Sequence[str],
    *,
    execv: ExecFunction | None = None,
    use_exec: bool | None = None,
) -> int:
    """Run ``path`` with ``args`` forwarded verbatim.

    On POSIX the current process image is replaced, so this only returns when
    a test supplies ``execv``. Elsewhere a child is spawned and waited for.

    Args:
        path: Executable to run.
        args: Arguments passed after ``argv[0]``.
        execv: Replacement for :func:`os.execv`.
        use_exec: Force or forbid process replacement; defaults to ``os.name == "posix"``.

    Returns:
        int: Exit status of the child when it was spawned rather than exec'd.

    Raises:
        MissingExecutableError: If the operating system refuses to run ``path``.
    """

    argv = [str(path), *args]
    replace = (os.name == "posix") if use_exec is None else use_exec
    LOGGER.debug("launching %s", " ".join(argv))
    try:
        if replace:
            sys.stdout.flush()
            sys.stderr.flush()
            (execv or os.execv)(str(path), argv)
            return 0
        completed = subprocess.run(argv, check=False)  # nosec B603 - argv list, no shell
    except OSError as exc:
        raise MissingExecutableError(
            f"Cannot run {path}: {exc.strerror or exc}",
            hint="Remove the cache entry holding it and retry, or check the host triple.",
        ) from exc
    return exit_status(completed.returncode)


__all__ = [
    "BinarySelection",
    "LaunchTarget",
    "choose_binary",
    "exec_binary",
    "exit_status",
    "is_executable",
    "select_binary",
]
