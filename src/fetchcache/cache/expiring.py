"""In-memory response cache with per-entry expiration.

:class:`ExpiringResponseCache` maps a resource identity to an
:class:`~fetchcache.models.HttpResponse` plus an absolute expiration
timestamp.  Expired entries are swept lazily at the start of every read, so
no background timer thread is needed; unread expired entries cost memory,
never correctness.

The entry store and the expiration store are always mutated together under
a single lock, so concurrent readers never see a key present in one but
absent from the other.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from fetchcache.models import HttpResponse, now_millis

Clock = Callable[[], float]
"""A timestamp source returning milliseconds (wall-clock or monotonic)."""


class ExpiringResponseCache:
    """Thread-safe cache of HTTP responses keyed by resource identity.

    Args:
        clock: Timestamp source in milliseconds.  Defaults to
            :func:`~fetchcache.models.now_millis`.

    Example::

        cache = ExpiringResponseCache()
        cache.store(request.resource_identity, response, 5000)
        cache.get(request.resource_identity)  # response, for five seconds
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock: Clock = clock or now_millis
        self._lock = threading.Lock()
        self._responses: dict[str, HttpResponse] = {}
        self._expire_times: dict[str, float] = {}

    def store(self, key: str, response: HttpResponse, ttl_ms: float) -> None:
        """Cache *response* under *key* for *ttl_ms* milliseconds.

        Overwrites any existing entry for the same key.
        """
        with self._lock:
            self._responses[key] = response
            self._expire_times[key] = self._clock() + ttl_ms

    def has(self, key: str) -> bool:
        """Return ``True`` if an unexpired response is cached under *key*."""
        with self._lock:
            self._sweep()
            return key in self._responses

    def get(self, key: str) -> Optional[HttpResponse]:
        """Return the unexpired response cached under *key*, or ``None``."""
        with self._lock:
            self._sweep()
            return self._responses.get(key)

    def live_keys(self) -> set[str]:
        """Sweep expired entries and return the keys still cached."""
        with self._lock:
            self._sweep()
            return set(self._responses)

    def now(self) -> float:
        """Return the current time of this cache's clock, in milliseconds."""
        return self._clock()

    def size(self) -> int:
        """Return the raw number of entries, including expired ones not yet swept."""
        with self._lock:
            return len(self._responses)

    def remove(self, key: str) -> None:
        """Delete the entry for *key*.  No-op when absent."""
        with self._lock:
            self._responses.pop(key, None)
            self._expire_times.pop(key, None)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._responses.clear()
            self._expire_times.clear()

    def __len__(self) -> int:
        return self.size()

    def _sweep(self) -> None:
        # Caller holds self._lock.
        if not self._expire_times:
            return
        now = self._clock()
        expired = [key for key, expires_at in self._expire_times.items() if expires_at <= now]
        for key in expired:
            del self._responses[key]
            del self._expire_times[key]
