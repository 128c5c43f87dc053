"""In-memory response caching for fetchcache.

This package provides two layers:

* :class:`ExpiringResponseCache` -- responses keyed by resource identity,
  each with an absolute expiration time, swept lazily on read.
* :class:`ContentCache` -- an index grouping resource identities under a
  content name for bulk invalidation.

Both are owned by a :class:`~fetchcache.api.WebApi` instance and are safe
to share between its worker threads.  Nothing is persisted to disk.
"""

from fetchcache.cache.content import ContentCache
from fetchcache.cache.expiring import ExpiringResponseCache

__all__ = ["ContentCache", "ExpiringResponseCache"]
