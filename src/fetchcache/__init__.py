"""fetchcache -- asynchronous HTTP requests with de-duplication and content caching.

This package issues HTTP requests against a configured base API on a
bounded worker pool, suppresses duplicate fetches of a resource that is
already in flight, caches responses per *content name* with a per-entry
expiration time, and notifies registered listeners whenever a request
resolves or a content name is invalidated.

Typical usage::

    from fetchcache import ApiRequest, WebApi

    with WebApi("https://api.example.com") as api:
        future = api.start_request(
            ApiRequest("/news", content_name="news", cache_time_ms=60_000)
        )
        request = future.result()

Modules:
    api: The :class:`~fetchcache.api.WebApi` request orchestrator.
    cache: Expiring response cache and content-keyed index.
    client: Request descriptions, transport, tracker, listeners.
    models: Pydantic models for responses and configuration.
    config: XDG-aware configuration loading and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr diagnostics with Rich support.
    app: Typer CLI entry point.
"""

__version__ = "1.0.0"

from fetchcache.api import WebApi  # noqa: E402
from fetchcache.client.listeners import ApiListener  # noqa: E402
from fetchcache.client.request import ApiRequest  # noqa: E402

__all__ = ["WebApi", "ApiRequest", "ApiListener", "__version__"]
