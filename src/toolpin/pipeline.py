# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Outermost assembly: configuration, resolution, materialisation and launch."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from .cache.store import CacheEntry, CacheKey, CacheStore
from .compat import CompatResult, CompatValidator
from .config.loader import ConfigLoadResult, load_config
from .config.models import BinarySpec, EffectiveConfig, PackageType
from .constants import BINARY_ENV, SCRIPT_ENV, STAGING_MAX_AGE_SECONDS, VERBOSE_ENV
from .errors import ConfigError, ResolutionError, ToolpinError
from .fetch.fetcher import Fetcher
from .fetch.http import HttpClient, RequestsHttpClient
from .launcher import (
    BinarySelection,
    LaunchTarget,
    choose_binary,
    exec_binary,
    is_executable,
    select_binary,
)
from .logging import LOGGER, configure_debug_logging, fail, info, warn
from .platform import HostTriple, detect_host, resolve_cache_root
from .process import run_command
from .release_index import CachedReleaseIndex, HttpReleaseIndex
from .templates import archive_url, expand, unknown_placeholders
from .utils import env_flag
from .versions import ReleaseEntry, ReleaseIndex, ResolvedVersion, VersionResolver


@dataclass(frozen=True, slots=True)
class LaunchContext:
    """Everything one invocation needs, assembled from the environment.

    Attributes:
        cwd: Working directory of the invocation.
        env: Environment mapping captured at start-up.
        loaded: Merged configuration and its provenance.
        host: Detected host triple.
        cache_root: Root directory of the launcher cache.
        client: HTTP transport shared by every network call.
    """

    cwd: Path
    env: Mapping[str, str]
    loaded: ConfigLoadResult
    host: HostTriple
    cache_root: Path
    client: HttpClient

    @property
    def config(self) -> EffectiveConfig:
        return self.loaded.config

    @property
    def store(self) -> CacheStore:
        return CacheStore(self.cache_root)


@dataclass(frozen=True, slots=True)
class ArchivePlan:
    """Concrete archive location and cache identity for a resolved version."""

    version: ResolvedVersion
    archive_name: str
    url: str
    key: CacheKey
    package_type: PackageType


class _UnconfiguredIndex:
    """Index used when no ``release_index.url`` is configured."""

    def entries(self) -> list[ReleaseEntry]:
        raise ResolutionError(
            "Cannot resolve 'latest': release_index.url is not configured",
            hint="Set release_index.url or an explicit version.",
        )


def build_context(
    cwd: Path,
    env: Mapping[str, str],
    *,
    host: HostTriple | None = None,
    client: HttpClient | None = None,
) -> LaunchContext:
    """Load configuration and detect the host for one invocation.

    Args:
        cwd: Working directory of the invocation.
        env: Environment mapping; the only place it is read.
        host: Host triple override for tests.
        client: HTTP transport override for tests.

    Returns:
        LaunchContext: Assembled inputs for the pipeline.

    Raises:
        ConfigError: If configuration or host detection fails.
    """

    loaded = load_config(cwd, env)
    config = loaded.config
    cache_root = resolve_cache_root(env, config_override=config.cache_dir)
    return LaunchContext(
        cwd=cwd,
        env=env,
        loaded=loaded,
        host=host or detect_host(),
        cache_root=cache_root,
        client=client or RequestsHttpClient(timeout=config.network.timeout_seconds),
    )


def build_release_index(context: LaunchContext) -> ReleaseIndex:
    """Return the cached HTTP release index configured for the tool."""

    settings = context.config.release_index
    if not settings.url:
        return _UnconfiguredIndex()
    inner = HttpReleaseIndex(settings.url, context.client, settings=context.config.network)
    return CachedReleaseIndex.for_tool(
        inner,
        context.cache_root,
        context.config.tool_name,
        ttl_seconds=settings.latest_ttl_seconds,
        url=settings.url,
    )


def resolve_version(context: LaunchContext, index: ReleaseIndex | None = None) -> ResolvedVersion:
    """Resolve the configured version spec, honouring environment overrides."""

    settings = context.config.release_index
    resolver = VersionResolver(
        index if index is not None else build_release_index(context),
        include_prereleases=settings.include_prereleases,
        version_pattern=settings.version_pattern,
    )
    return resolver.resolve(context.config.version, context.loaded.version_override)


def plan_archive(config: EffectiveConfig, version: ResolvedVersion, host: HostTriple) -> ArchivePlan:
    """Expand the archive pattern and derive the URL and cache key.

    Raises:
        ConfigError: If the expanded URL has no scheme or host.
    """

    archive_name = expand(config.archive_pattern, version.raw, host)
    if leftovers := unknown_placeholders(archive_name):
        warn(f"archive name {archive_name!r} still contains unknown placeholders: {', '.join(leftovers)}")
    url = archive_url(config.base_download_url, version.raw, archive_name)
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ConfigError(f"Archive URL {url!r} is not absolute", hint="Check base_download_url.")
    return ArchivePlan(
        version=version,
        archive_name=archive_name,
        url=url,
        key=CacheKey(
            tool=config.tool_name,
            version=version.raw,
            triple=host.triple,
            archive_name=archive_name,
        ),
        package_type=config.package_type or PackageType.infer(archive_name),
    )


def _entry_problem(entry: CacheEntry, plan: ArchivePlan, binary: BinarySpec) -> str | None:
    if entry.marker.url != plan.url:
        return f"was downloaded from {entry.marker.url}, expected {plan.url}"
    if not is_executable(entry.binary_path(binary.path)):
        return f"has no executable {binary.path}"
    return None


def materialize(
    context: LaunchContext,
    plan: ArchivePlan,
    binary: BinarySpec,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> CacheEntry:
    """Return a published cache entry for ``plan``, downloading it on a miss.

    An entry whose marker URL differs from ``plan.url`` or that lacks the
    selected binary is evicted and rebuilt once.

    Args:
        context: Assembled invocation inputs.
        plan: Archive location and cache identity.
        binary: Binary about to be launched.
        sleep: Sleep function used between download retries.

    Returns:
        CacheEntry: Published entry holding the extracted archive.
    """

    store = context.store
    store.sweep_staging(STAGING_MAX_AGE_SECONDS)
    entry = store.lookup(plan.key)
    if entry is not None:
        problem = _entry_problem(entry, plan, binary)
        if problem is None:
            LOGGER.debug("cache hit %s", entry.path)
            return entry
        warn(f"cached {plan.key.tool} {plan.key.version} {problem}; rebuilding")
        store.evict(entry)
    info(f"fetching {plan.key.tool} {plan.key.version} from {plan.url}")
    fetcher = Fetcher(context.client, context.config.network, sleep=sleep)
    handle = store.begin_populate(plan.key)
    fetcher.fetch_and_extract(plan.url, handle, plan.package_type, context.config.binaries[0].path)
    return store.publish(handle, url=plan.url)


def selection_from_env(env: Mapping[str, str], config: EffectiveConfig, program_name: str | None) -> BinarySelection:
    """Collect the binary selection inputs for ``config``."""

    return BinarySelection(
        requested=(env.get(BINARY_ENV) or "").strip() or None,
        script_mode=env_flag(env.get(SCRIPT_ENV)),
        program_name=program_name,
        default_binary=config.default_binary,
        require_selection=config.require_binary_selection,
    )


def run_compat_check(context: LaunchContext, version: ResolvedVersion) -> CompatResult | None:
    """Run the compatibility check when enabled."""

    config = context.config
    if not config.check_compat:
        return None
    validator = CompatValidator(context.client, config.compat, runner=run_command)
    return validator.check(context.cwd, base_download_url=config.base_download_url, version=version.raw)


def prepare_launch(
    context: LaunchContext,
    args: Sequence[str],
    *,
    program_name: str | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> LaunchTarget:
    """Resolve, materialise and check everything up to the point of launch.

    Args:
        context: Assembled invocation inputs.
        args: Arguments forwarded to the binary.
        program_name: Name the launcher was invoked under.
        sleep: Sleep function used between download retries.

    Returns:
        LaunchTarget: Executable and forwarded arguments.

    Raises:
        ToolpinError: On the first fatal failure.
    """

    config = context.config
    version = resolve_version(context)
    plan = plan_archive(config, version, context.host)
    selection = selection_from_env(context.env, config, program_name)
    binary = choose_binary(config.binaries, selection, args)
    entry = materialize(context, plan, binary, sleep=sleep)
    target = select_binary(entry, config.binaries, selection, args)
    run_compat_check(context, version)
    return target


def report_failure(error: ToolpinError) -> int:
    """Print ``error`` and its hint once and return its reserved exit code."""

    message = str(error)
    if error.hint:
        message = f"{message} ({error.hint})"
    fail(message)
    return error.exit_code


def run(
    args: Sequence[str],
    *,
    env: Mapping[str, str],
    cwd: Path,
    program_name: str | None = None,
    execv: Callable[[str, list[str]], object] | None = None,
    use_exec: bool | None = None,
) -> int:
    """Run the full pipeline and launch the tool.

    Args:
        args: Arguments forwarded verbatim to the tool.
        env: Environment mapping captured at start-up.
        cwd: Working directory of the invocation.
        program_name: Name the launcher was invoked under.
        execv: Replacement for :func:`os.execv`, for tests.
        use_exec: Force or forbid process replacement.

    Returns:
        int: Exit status of the tool, or a reserved launcher exit code.
    """

    configure_debug_logging(env_flag(env.get(VERBOSE_ENV)))
    try:
        context = build_context(cwd, env)
        target = prepare_launch(context, args, program_name=program_name)
        return exec_binary(target.path, target.args, execv=execv, use_exec=use_exec)
    except ToolpinError as exc:
        return report_failure(exc)


__all__ = [
    "ArchivePlan",
    "LaunchContext",
    "build_context",
    "build_release_index",
    "materialize",
    "plan_archive",
    "prepare_launch",
    "report_failure",
    "resolve_version",
    "run",
    "run_compat_check",
    "selection_from_env",
]
