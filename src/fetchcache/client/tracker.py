"""Tracking of requests that are currently being fetched.

:class:`OpenRequestTracker` is the set of resource identities with a fetch
in flight.  A key enters the set when its fetch is dispatched and leaves it
when the fetch completes, on every exit path.  While a key is a member, no
second fetch for it may be started.
"""

from __future__ import annotations

import threading


class OpenRequestTracker:
    """Thread-safe set of in-flight resource identities.

    Per key the only transitions are ``idle -> in flight`` (on dispatch) and
    ``in flight -> idle`` (on completion).  :meth:`try_open` performs the
    check and the transition atomically, so of many threads racing for the
    same key exactly one wins.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._open: set[str] = set()

    def is_open(self, key: str) -> bool:
        """Return ``True`` while a fetch for *key* is in flight."""
        with self._lock:
            return key in self._open

    def store_request(self, key: str) -> None:
        """Mark *key* as in flight.  Call before the network fetch begins."""
        with self._lock:
            self._open.add(key)

    def remove_request(self, key: str) -> None:
        """Mark *key* as idle again.  No-op when it was not in flight."""
        with self._lock:
            self._open.discard(key)

    def try_open(self, key: str) -> bool:
        """Mark *key* as in flight unless it already is.

        Returns:
            ``True`` if the caller now owns the fetch for *key*, ``False``
            if another fetch was already in flight.
        """
        with self._lock:
            if key in self._open:
                return False
            self._open.add(key)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._open)
