"""Request descriptions and resource identity.

Two request types live here:

* :class:`ApiRequest` -- what callers hand to
  :meth:`~fetchcache.api.WebApi.start_request`: a path relative to the
  API's base URL, query parameters, an optional body, and the caching
  hints (content name and cache time).  It also carries the outcome once
  the request resolves.
* :class:`HttpRequest` -- the concrete request derived from an
  ``ApiRequest`` and the API's configuration, with a stable
  :attr:`~HttpRequest.resource_identity` used as cache and tracker key.
"""

from __future__ import annotations

import hashlib
import threading
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from fetchcache.models import HttpResponse, RequestStatus


def build_url(base_url: str, path: Optional[str], params: Optional[dict[str, Any]] = None) -> str:
    """Join *base_url* and *path* and append *params* as a sorted query string.

    Sorting the parameters makes the URL, and therefore the resource
    identity, independent of parameter order.

    Raises:
        httpx.InvalidURL: If the joined URL cannot be parsed.
    """
    url = f"{base_url}{path}" if path else base_url
    query = sorted((str(k), str(v)) for k, v in (params or {}).items())
    return str(httpx.URL(url).copy_merge_params(query))


@dataclass(frozen=True)
class HttpRequest:
    """A fully resolved HTTP request.

    Attributes:
        url: Absolute URL including the query string.
        method: Upper-case HTTP method.
        body: Optional raw request body.
    """

    url: str
    method: str = "GET"
    body: Optional[str] = None

    @property
    def resource_identity(self) -> str:
        """Stable key identifying the requested resource.

        Derived from the method and the full URL (query included).  Headers
        and body are not part of the identity.
        """
        raw = "|".join([self.method.upper(), self.url])
        return hashlib.sha256(raw.encode()).hexdigest()


class ApiRequest:
    """A logical request against a :class:`~fetchcache.api.WebApi`.

    Responses are only cached when *content_name* is set and
    *cache_time_ms* is greater than zero.

    Args:
        path: Path appended to the API's base URL (e.g. ``"/users"``).
        method: HTTP method.
        params: Query parameters.  These override persistent parameters
            of the same name.
        body: Optional raw request body.
        content_name: Content the response belongs to, used for bulk
            invalidation via :meth:`~fetchcache.api.WebApi.invalidate_content`.
        cache_time_ms: How long to cache a successful response.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        method: str = "GET",
        params: Optional[dict[str, Any]] = None,
        body: Optional[str] = None,
        content_name: Optional[str] = None,
        cache_time_ms: int = 0,
    ) -> None:
        self.path = path
        self.method = method.upper()
        self.params: dict[str, Any] = dict(params or {})
        self.body = body
        self.content_name = content_name or None
        self.cache_time_ms = cache_time_ms
        self._lock = threading.Lock()
        self._status = RequestStatus.PENDING
        self._response: Optional[HttpResponse] = None

    def __repr__(self) -> str:
        return f"<ApiRequest {self.method} {self.path or ''} [{self._status.value}]>"

    @property
    def status(self) -> RequestStatus:
        return self._status

    @property
    def response(self) -> Optional[HttpResponse]:
        """The response, once the request completed; ``None`` otherwise."""
        return self._response

    @property
    def is_resolved(self) -> bool:
        return self._status is not RequestStatus.PENDING

    @property
    def has_failed(self) -> bool:
        return self._status is RequestStatus.FAILED

    def complete(self, response: HttpResponse) -> None:
        """Resolve the request with *response*.  Ignored once resolved."""
        with self._lock:
            if self._status is RequestStatus.PENDING:
                self._response = response
                self._status = RequestStatus.COMPLETED

    def fail(self) -> None:
        """Resolve the request as failed.  Ignored once resolved."""
        with self._lock:
            if self._status is RequestStatus.PENDING:
                self._status = RequestStatus.FAILED
