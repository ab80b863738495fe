# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""HTTP transport built on ``requests`` with bounded retries."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Final, Protocol, TypeVar
from urllib.parse import urlparse

import requests

from .. import __version__
from ..config.models import NetworkSettings
from ..errors import ConfigError, FetchError, FetchHttpError, FetchNetworkError
from ..logging import LOGGER

HTTPS_SCHEME: Final[str] = "https"
HTTP_SCHEME: Final[str] = "http"
HTTP_NOT_FOUND: Final[int] = 404
CHUNK_SIZE: Final[int] = 1 << 16
USER_AGENT: Final[str] = f"toolpin/{__version__}"

_NETWORK_EXCEPTIONS: Final[tuple[type[Exception], ...]] = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
    requests.exceptions.ContentDecodingError,
)

T = TypeVar("T")


class HttpClient(Protocol):
    """Minimal transport used by the fetcher, release index and compat check."""

    def stream(self, url: str) -> Iterator[bytes]:
        """Yield the response body of ``url`` in chunks.

        Raises:
            FetchNetworkError: On connection, timeout or interrupted body failures.
            FetchHttpError: When the server answers with a non-success status.
        """

    def get_json(self, url: str) -> tuple[Any, str | None]:
        """Return the decoded JSON body of ``url`` and the ``rel="next"`` link, if any."""

    def get_text(self, url: str) -> str:
        """Return the decoded text body of ``url``."""


def ensure_transport_allowed(url: str, *, allow_insecure_http: bool) -> None:
    """Reject URLs whose scheme or host cannot be fetched.

    Args:
        url: Absolute URL about to be requested.
        allow_insecure_http: Permit plain ``http`` URLs.

    Raises:
        ConfigError: If the URL lacks a host or uses an unsupported scheme.
    """

    parsed = urlparse(url)
    allowed = {HTTPS_SCHEME, HTTP_SCHEME} if allow_insecure_http else {HTTPS_SCHEME}
    if parsed.scheme.lower() not in allowed or not parsed.netloc:
        raise ConfigError(
            f"Refusing to download from {url!r}",
            hint="Use an https:// base_download_url or set network.allow_insecure_http.",
        )


def _raise_for_status(response: requests.Response, url: str) -> None:
    if response.ok:
        return
    status = response.status_code
    hint = None
    if status == HTTP_NOT_FOUND:
        hint = "This version/target combination may not be published; check the version and base_download_url."
    raise FetchHttpError(f"GET {url} returned HTTP {status}", status=status, hint=hint)


class RequestsHttpClient:
    """:class:`HttpClient` backed by a shared ``requests`` session.

    Args:
        timeout: Per-request timeout in seconds.
        session: Optional session override for tests.
    """

    def __init__(self, *, timeout: float, session: requests.Session | None = None) -> None:
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    @contextmanager
    def _get(self, url: str, *, stream: bool, headers: dict[str, str] | None = None) -> Iterator[requests.Response]:
        try:
            response = self._session.get(url, timeout=self._timeout, stream=stream, headers=headers)
        except _NETWORK_EXCEPTIONS as exc:
            raise FetchNetworkError(f"GET {url} failed: {exc}", hint="Check network connectivity.") from exc
        except requests.RequestException as exc:
            raise FetchError(f"GET {url} failed: {exc}") from exc
        try:
            _raise_for_status(response, url)
            yield response
        finally:
            response.close()

    def stream(self, url: str) -> Iterator[bytes]:
        with self._get(url, stream=True) as response:
            try:
                yield from response.iter_content(chunk_size=CHUNK_SIZE)
            except _NETWORK_EXCEPTIONS as exc:
                raise FetchNetworkError(f"Download of {url} was interrupted: {exc}") from exc

    def get_json(self, url: str) -> tuple[Any, str | None]:
        with self._get(url, stream=False, headers={"Accept": "application/json"}) as response:
            try:
                payload = response.json()
            except ValueError as exc:
                raise FetchError(f"GET {url} did not return JSON: {exc}") from exc
            next_url = response.links.get("next", {}).get("url")
            return payload, next_url

    def get_text(self, url: str) -> str:
        with self._get(url, stream=False) as response:
            return response.text


def with_retries(
    operation: Callable[[], T],
    *,
    settings: NetworkSettings,
    description: str,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``operation`` retrying retryable fetch failures with exponential backoff.

    Args:
        operation: Callable performing one complete attempt.
        settings: Network settings bounding the retries.
        description: Short label used in debug output.
        sleep: Sleep function, injectable for tests.

    Returns:
        T: Result of the first successful attempt.

    Raises:
        FetchError: The last failure once retries are exhausted, or any
            non-retryable failure immediately.
    """

    attempts = settings.max_retries + 1
    attempt = 0
    while True:
        try:
            return operation()
        except FetchError as exc:
            if not exc.retryable or attempt >= attempts - 1:
                raise
            delay = settings.backoff_seconds * (2**attempt)
            LOGGER.debug(
                "%s failed (attempt %d/%d): %s; retrying in %.2fs",
                description,
                attempt + 1,
                attempts,
                exc,
                delay,
            )
            sleep(delay)
            attempt += 1


__all__ = [
    "HttpClient",
    "RequestsHttpClient",
    "USER_AGENT",
    "ensure_transport_allowed",
    "with_retries",
]
