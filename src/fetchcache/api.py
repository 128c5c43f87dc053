"""Request orchestrator -- de-duplication, caching and listener notification.

:class:`WebApi` is the main entry point.  It owns one
:class:`~fetchcache.cache.ContentCache`, one
:class:`~fetchcache.client.tracker.OpenRequestTracker`, one
:class:`~fetchcache.client.listeners.ListenerCollection` and a bounded
worker pool.  For every :class:`~fetchcache.client.request.ApiRequest`
passed to :meth:`WebApi.start_request` it:

1. Derives the resource identity (method + URL + sorted parameters).
2. Does nothing if a fetch for that identity is already in flight; the
   running fetch will notify listeners.
3. Completes the request from the cache, synchronously, when caching is
   enabled, the request names its content and a fresh response exists.
4. Otherwise marks the identity in flight and fetches on the pool.  On
   success the response is cached (caching enabled, positive cache time,
   content name set, cacheable status), for no longer than its
   ``Expires`` header allows; on timeout or network failure the
   request is marked failed.  Either way the identity is released and
   listeners are notified.

Example::

    class Printer(ApiListener):
        def on_request_resolved(self, request):
            print(request.status, request.response)

    with WebApi("https://api.example.com") as api:
        api.start_listening(Printer())
        api.start_request(ApiRequest("/news", content_name="news", cache_time_ms=60_000))
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Optional

import httpx

from fetchcache.cache import ContentCache
from fetchcache.cache.expiring import Clock
from fetchcache.client.listeners import ApiListener, ListenerCollection
from fetchcache.client.request import ApiRequest, HttpRequest, build_url
from fetchcache.client.tracker import OpenRequestTracker
from fetchcache.client.transport import HttpTransport
from fetchcache.exceptions import ConnectionError_, RequestTimeoutError
from fetchcache.models import ApiConfig, HttpResponse, RequestConfig
from fetchcache.output import get_output

DEFAULT_TIMEOUT_MS = 15000
"""Timeout applied to each request when none is configured."""


class WebApi:
    """Access point to a web-based API.

    Must be closed (or used as a context manager) to shut the worker pool
    and HTTP client down.  Caching starts enabled.

    Args:
        base_url: URL every request path is appended to.
        timeout_ms: Per-request timeout in milliseconds.
        max_workers: Maximum number of concurrent fetches.
        cache_enabled: Initial cache state.
        persistent_params: Query parameters included with every request.
        transport: Transport to use; defaults to a new :class:`HttpTransport`.
        clock: Timestamp source (milliseconds) for the cache.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_workers: int = 8,
        cache_enabled: bool = True,
        persistent_params: Optional[dict[str, Any]] = None,
        transport: Optional[HttpTransport] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._base_url = base_url
        self._timeout_ms = timeout_ms
        self._use_cache = cache_enabled
        self._params_lock = threading.Lock()
        self._persistent_params: dict[str, Any] = dict(persistent_params or {})
        self._transport = transport or HttpTransport()
        self._listeners = ListenerCollection()
        self._open_requests = OpenRequestTracker()
        self._cache = ContentCache(clock=clock)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="fetchcache"
        )

    @classmethod
    def from_config(
        cls,
        config: ApiConfig,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Optional[Clock] = None,
    ) -> WebApi:
        """Create a :class:`WebApi` from a resolved :class:`~fetchcache.models.ApiConfig`.

        Args:
            config: Configuration with a ``base_url``.
            transport: Optional :class:`httpx.BaseTransport` for the HTTP client.
            clock: Optional cache timestamp source.
        """
        request_config: RequestConfig = config.request
        return cls(
            config.base_url or "",
            timeout_ms=request_config.timeout_ms,
            max_workers=request_config.max_workers,
            cache_enabled=config.cache.enabled,
            persistent_params=config.persistent_params,
            transport=HttpTransport(request_config, transport=transport),
            clock=clock,
        )

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> WebApi:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self, wait: bool = True) -> None:
        """Stop accepting requests and release the pool and HTTP client.

        Args:
            wait: Block until running fetches have finished.
        """
        self._executor.shutdown(wait=wait)
        self._transport.close()

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def build_http_request(self, request: ApiRequest) -> HttpRequest:
        """Resolve *request* against the base URL and persistent parameters.

        If base URL + path does not form a valid URL, a warning is emitted
        and the base URL alone is used.
        """
        with self._params_lock:
            params = {**self._persistent_params, **request.params}
        try:
            url = build_url(self._base_url, request.path, params)
        except httpx.InvalidURL:
            get_output().warning(
                f"Malformed URL '{self._base_url}{request.path or ''}', "
                "reverting to base URL"
            )
            url = build_url(self._base_url, None, params)
        return HttpRequest(url=url, method=request.method, body=request.body)

    def start_request(self, request: ApiRequest) -> Optional[Future[ApiRequest]]:
        """Start resolving *request*; listeners are notified when it resolves.

        Returns:
            ``None`` if a fetch for the same resource is already in flight
            (this request is dropped).  Otherwise a :class:`~concurrent.futures.Future`
            that yields *request* once resolved -- already done for a cache hit.
        """
        http = self.build_http_request(request)
        key = http.resource_identity
        output = get_output()

        if self._open_requests.is_open(key):
            output.debug(f"Already in flight, skipping: {http.method} {http.url}")
            return None

        if self._use_cache and request.content_name is not None:
            cached = self._cache.get_response(request.content_name, key)
            if cached is not None:
                output.debug(f"Cache hit [{request.content_name}]: {http.method} {http.url}")
                request.complete(cached)
                self._listeners.invoke_all_resolved(request)
                done: Future[ApiRequest] = Future()
                done.set_result(request)
                return done

        if not self._open_requests.try_open(key):
            output.debug(f"Already in flight, skipping: {http.method} {http.url}")
            return None

        output.debug(f"Dispatching: {http.method} {http.url}")
        try:
            return self._executor.submit(self._fetch, request, http, key)
        except RuntimeError:
            # Pool already shut down.
            self._open_requests.remove_request(key)
            raise

    def _fetch(self, request: ApiRequest, http: HttpRequest, key: str) -> ApiRequest:
        """Worker body: fetch, cache, release the identity, notify listeners."""
        output = get_output()
        try:
            response = self._transport.send(http, self._timeout_ms)
        except RequestTimeoutError as exc:
            output.debug(str(exc))
            request.fail()
        except ConnectionError_ as exc:
            output.warning(str(exc))
            request.fail()
        else:
            request.complete(response)
            content_name = request.content_name
            if content_name is not None:
                cache_time = self._cache_time(request, response)
                if cache_time > 0:
                    self._cache.add(content_name, key, response, cache_time)
        finally:
            self._open_requests.remove_request(key)
            # Unexpected errors still resolve the request before propagating.
            request.fail()
            self._listeners.invoke_all_resolved(request)
        return request

    def _cache_time(self, request: ApiRequest, response: HttpResponse) -> float:
        """Return how long to cache *response*, or ``0`` to skip caching.

        The request's cache time is capped by the response's ``Expires``
        header when the server sent one.
        """
        if not self._use_cache or not response.is_cacheable:
            return 0
        cache_time: float = request.cache_time_ms
        if response.expires:
            cache_time = min(
                cache_time, response.cacheable_millis_left(now=self._cache.responses.now())
            )
        return cache_time

    # ------------------------------------------------------------------ #
    # Listeners and invalidation
    # ------------------------------------------------------------------ #

    def start_listening(self, listener: ApiListener) -> None:
        """Register *listener* for resolve and invalidation events."""
        self._listeners.add(listener)

    def stop_listening(self, listener: ApiListener) -> None:
        self._listeners.remove(listener)

    def invalidate_content(self, content_name: str) -> None:
        """Drop every cached response of *content_name* and notify all listeners."""
        self._cache.remove_all(content_name)
        get_output().debug(f"Invalidated content '{content_name}'")
        self._listeners.invoke_all_content_invalidated(content_name)

    # ------------------------------------------------------------------ #
    # Settings
    # ------------------------------------------------------------------ #

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def cache(self) -> ContentCache:
        """The response cache.

        Assigning a cache replaces it wholesale, which lets an application
        keep one across :class:`WebApi` instances.  No serialization format
        is provided.
        """
        return self._cache

    @cache.setter
    def cache(self, cache: ContentCache) -> None:
        self._cache = cache

    @property
    def open_requests(self) -> OpenRequestTracker:
        return self._open_requests

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    def set_timeout(self, milliseconds: int) -> None:
        """Set the timeout used by requests dispatched from now on."""
        self._timeout_ms = milliseconds

    @property
    def cache_enabled(self) -> bool:
        return self._use_cache

    def set_cache_enabled(self, enabled: bool) -> None:
        """Enable or disable the cache.  Disabling also clears it."""
        self._use_cache = enabled
        if not enabled:
            self._cache.clear()

    @property
    def persistent_params(self) -> dict[str, Any]:
        with self._params_lock:
            return dict(self._persistent_params)

    def set_persistent_url_parameter(self, name: str, value: Any) -> None:
        """Include ``name=value`` in the query of every request."""
        with self._params_lock:
            self._persistent_params[name] = value

    def remove_persistent_url_parameter(self, name: str) -> None:
        with self._params_lock:
            self._persistent_params.pop(name, None)
