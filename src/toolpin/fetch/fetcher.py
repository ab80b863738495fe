# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Download an archive into a staging handle and unpack it."""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path
from urllib.parse import unquote, urlparse

from ..cache.store import StagingHandle
from ..config.models import NetworkSettings, PackageType
from ..errors import CacheError, ToolpinError
from ..logging import LOGGER
from ..utils import slugify
from .archives import extractor_for
from .http import HttpClient, ensure_transport_allowed, with_retries


def _archive_filename(url: str) -> str:
    name = unquote(urlparse(url).path.rsplit("/", 1)[-1])
    return slugify(name) if name else "archive"


class Fetcher:
    """Stream archives over HTTPS with bounded retries and extract them.

    Args:
        client: HTTP transport.
        settings: Network settings for scheme policy and retries.
        sleep: Sleep function used between retries.
    """

    def __init__(
        self,
        client: HttpClient,
        settings: NetworkSettings,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._settings = settings
        self._sleep = sleep

    def download(self, url: str, handle: StagingHandle) -> Path:
        """Stream ``url`` into ``handle.download`` and return the file path.

        Each attempt rewrites the file from scratch.

        Raises:
            ConfigError: If the URL scheme is not allowed.
            FetchError: When the download fails after retries.
            CacheError: If the staging file cannot be written.
        """

        ensure_transport_allowed(url, allow_insecure_http=self._settings.allow_insecure_http)
        target = handle.download / _archive_filename(url)

        def _attempt() -> Path:
            try:
                with target.open("wb") as sink:
                    for chunk in self._client.stream(url):
                        sink.write(chunk)
            except OSError as exc:
                raise CacheError(f"Cannot write download to {target}: {exc}") from exc
            return target

        path = with_retries(_attempt, settings=self._settings, description=f"download {url}", sleep=self._sleep)
        LOGGER.debug("downloaded %s (%d bytes)", url, path.stat().st_size)
        return path

    def fetch_and_extract(
        self,
        url: str,
        handle: StagingHandle,
        package_type: PackageType,
        member_name: str,
    ) -> None:
        """Download ``url`` and extract it into ``handle.content``.

        Args:
            url: Archive URL.
            handle: Staging handle receiving the download and the extracted tree.
            package_type: Archive layout selecting the extractor.
            member_name: Relative path single-file payloads are written to.

        Raises:
            ToolpinError: Any failure; the staging handle is discarded first.
        """

        try:
            archive = self.download(url, handle)
            extractor_for(package_type).extract(archive, handle.content, member_name)
        except ToolpinError:
            handle.discard()
            raise
        LOGGER.debug("extracted %s as %s into %s", archive.name, package_type, handle.content)


__all__ = ["Fetcher"]
