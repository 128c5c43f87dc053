"""Listener interface and dispatcher for request and invalidation events.

This module provides two components:

* :class:`ApiListener` -- base class with no-op callbacks.  Subclasses
  override the events they care about.
* :class:`ListenerCollection` -- the registered listeners of one
  :class:`~fetchcache.api.WebApi`, invoked in registration order.

Listeners are called from worker threads for fetched requests and from the
caller's thread for cache hits and invalidations.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from fetchcache.output import get_output

if TYPE_CHECKING:
    from fetchcache.client.request import ApiRequest


class ApiListener:
    """Receives events from a :class:`~fetchcache.api.WebApi`.

    Example::

        class Printer(ApiListener):
            def on_request_resolved(self, request):
                print(request, request.response)

        api.start_listening(Printer())
    """

    def on_request_resolved(self, request: ApiRequest) -> None:
        """Called once a request completed or failed (check ``request.status``)."""

    def on_content_invalidated(self, content_name: str) -> None:
        """Called after every cached response of *content_name* was dropped."""


class ListenerCollection:
    """Ordered, thread-safe collection of :class:`ApiListener` instances.

    Each dispatch iterates a snapshot, so listeners may register or
    unregister while an event is being delivered.  A listener that raises
    is reported as a warning and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[ApiListener] = []

    def add(self, listener: ApiListener) -> None:
        """Register *listener*.  Registering the same instance twice is a no-op."""
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove(self, listener: ApiListener) -> None:
        """Unregister *listener*.  No-op when it is not registered."""
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def invoke_all_resolved(self, request: ApiRequest) -> None:
        for listener in self._snapshot():
            try:
                listener.on_request_resolved(request)
            except Exception as exc:
                get_output().warning(
                    f"Listener {type(listener).__name__} failed on {request!r}: {exc}"
                )

    def invoke_all_content_invalidated(self, content_name: str) -> None:
        for listener in self._snapshot():
            try:
                listener.on_content_invalidated(content_name)
            except Exception as exc:
                get_output().warning(
                    f"Listener {type(listener).__name__} failed on "
                    f"invalidation of '{content_name}': {exc}"
                )

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _snapshot(self) -> list[ApiListener]:
        with self._lock:
            return list(self._listeners)
