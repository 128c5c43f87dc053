"""Content-keyed index over the expiring response cache.

:class:`ContentCache` groups cached resource identities under a logical
*content name* (e.g. ``"news"``) so that every response belonging to that
content can be invalidated in one call, typically after a request that
modified it.  The authoritative entries live in the wrapped
:class:`~fetchcache.cache.expiring.ExpiringResponseCache`; the content
name is informational on lookups, because the resource identity alone is
the cache key.
"""

from __future__ import annotations

import threading
from typing import Any, Optional

from fetchcache.cache.expiring import Clock, ExpiringResponseCache
from fetchcache.models import HttpResponse


class ContentCache:
    """Response cache with bulk invalidation by content name.

    Args:
        responses: The underlying expiring cache.  A new one is created
            when omitted.
        clock: Timestamp source passed to the new expiring cache; ignored
            when *responses* is given.

    Example::

        cache = ContentCache()
        cache.add("news", key_a, response_a, 1000)
        cache.add("sports", key_c, response_c, 1000)
        cache.remove_all("news")       # key_c stays cached
    """

    def __init__(
        self,
        responses: Optional[ExpiringResponseCache] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._responses = responses if responses is not None else ExpiringResponseCache(clock)
        self._lock = threading.Lock()
        self._keys_by_content: dict[str, set[str]] = {}

    @property
    def responses(self) -> ExpiringResponseCache:
        """The underlying :class:`ExpiringResponseCache`."""
        return self._responses

    def add(self, content_name: str, key: str, response: HttpResponse, ttl_ms: float) -> None:
        """Cache *response* under *key* and record the key as part of *content_name*.

        Keys of *content_name* whose responses have expired are dropped from
        the index first.
        """
        with self._lock:
            self._prune(content_name)
            self._responses.store(key, response, ttl_ms)
            self._keys_by_content.setdefault(content_name, set()).add(key)

    def has_response(self, content_name: str, key: str) -> bool:
        return self._responses.has(key)

    def get_response(self, content_name: str, key: str) -> Optional[HttpResponse]:
        return self._responses.get(key)

    def remove_all(self, content_name: str) -> None:
        """Remove every response cached under *content_name*.

        Unknown content names are a no-op.
        """
        with self._lock:
            keys = self._keys_by_content.pop(content_name, set())
            for key in keys:
                self._responses.remove(key)
            self._prune()

    def clear(self) -> None:
        """Remove all cached responses and forget every content name."""
        with self._lock:
            self._responses.clear()
            self._keys_by_content.clear()

    def content_names(self) -> list[str]:
        """Return the content names that still have unexpired responses, sorted."""
        with self._lock:
            self._prune()
            return sorted(self._keys_by_content)

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``size`` (entry count after sweeping expired
            responses) and ``content_names``.
        """
        content_names = self.content_names()
        return {
            "size": self._responses.size(),
            "content_names": content_names,
        }

    def __len__(self) -> int:
        return self._responses.size()

    def _prune(self, content_name: Optional[str] = None) -> None:
        """Drop indexed keys the response cache no longer holds.

        Only *content_name* is pruned when given, otherwise every content
        name.  Names left without keys are forgotten.  Caller holds
        ``self._lock``.
        """
        live = self._responses.live_keys()
        names = [content_name] if content_name is not None else list(self._keys_by_content)
        for name in names:
            keys = self._keys_by_content.get(name)
            if keys is None:
                continue
            keys &= live
            if not keys:
                del self._keys_by_content[name]
