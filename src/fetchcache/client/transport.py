"""Blocking HTTP transport used by the worker pool.

:class:`HttpTransport` wraps a single :class:`httpx.Client`, which is safe
to share between threads, and turns an :class:`~fetchcache.client.request.HttpRequest`
into an :class:`~fetchcache.models.HttpResponse`.

HTTP error statuses are returned as ordinary responses.  Only
network-level problems raise:

- :class:`httpx.TimeoutException` becomes :class:`~fetchcache.exceptions.RequestTimeoutError`.
- Any other :class:`httpx.TransportError` becomes
  :class:`~fetchcache.exceptions.ConnectionError_`.
"""

from __future__ import annotations

from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import Optional

import httpx

from fetchcache.client.request import HttpRequest
from fetchcache.exceptions import ConnectionError_, RequestTimeoutError
from fetchcache.models import HttpResponse, RequestConfig
from fetchcache.output import get_output


class HttpTransport:
    """Thread-safe HTTP transport.

    Args:
        config: Request settings; only ``verify_ssl`` is used here, the
            timeout is passed per call.
        transport: Optional :class:`httpx.BaseTransport`, e.g. an
            :class:`httpx.MockTransport` in tests.

    Example::

        transport = HttpTransport()
        response = transport.send(HttpRequest("https://api.example.com/users"), 5000)
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        config = config or RequestConfig()
        self._client = httpx.Client(
            verify=config.verify_ssl,
            follow_redirects=True,
            transport=transport,
        )

    def send(self, request: HttpRequest, timeout_ms: int) -> HttpResponse:
        """Perform *request* and return its response.

        Args:
            request: The resolved request.
            timeout_ms: Timeout in milliseconds, applied to connect, read,
                write and pool acquisition.

        Raises:
            RequestTimeoutError: If the timeout was exceeded.
            ConnectionError_: On any other network failure.
        """
        headers = {"Accept": "application/json, */*;q=0.8"}
        try:
            response = self._client.request(
                request.method,
                request.url,
                headers=headers,
                content=request.body,
                timeout=timeout_ms / 1000,
            )
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(
                f"{request.method} {request.url} timed out after {timeout_ms}ms"
            ) from exc
        except httpx.TransportError as exc:
            raise ConnectionError_(f"{request.method} {request.url} failed: {exc}") from exc

        get_output().debug(f"{request.method} {request.url} -> {response.status_code}")
        return HttpResponse(
            status_code=response.status_code,
            body=response.text,
            content_type=response.headers.get("content-type", "text/plain"),
            expires=_parse_expires(response.headers.get("expires")),
        )

    def close(self) -> None:
        """Close the underlying :class:`httpx.Client`."""
        self._client.close()


def _parse_expires(value: Optional[str]) -> float:
    """Convert an ``Expires`` header to milliseconds since the epoch (``0`` if invalid)."""
    if not value:
        return 0
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return 0
    if parsed.tzinfo is None:
        # "-0000" zone: UTC with no source offset.
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp() * 1000
