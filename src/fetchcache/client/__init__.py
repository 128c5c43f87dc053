"""HTTP client plumbing for fetchcache.

Provides the pieces the :class:`~fetchcache.api.WebApi` orchestrator
composes around the cache:

* :class:`ApiRequest` / :class:`HttpRequest` -- request descriptions and
  resource identity.
* :class:`HttpTransport` -- blocking transport backed by :class:`httpx.Client`.
* :class:`OpenRequestTracker` -- the set of in-flight resource identities.
* :class:`ApiListener` / :class:`ListenerCollection` -- event delivery.
"""

from fetchcache.client.listeners import ApiListener, ListenerCollection
from fetchcache.client.request import ApiRequest, HttpRequest, build_url
from fetchcache.client.tracker import OpenRequestTracker
from fetchcache.client.transport import HttpTransport

__all__ = [
    "ApiListener",
    "ApiRequest",
    "HttpRequest",
    "HttpTransport",
    "ListenerCollection",
    "OpenRequestTracker",
    "build_url",
]
