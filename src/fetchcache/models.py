"""Canonical Pydantic models shared across all fetchcache modules.

The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`CacheConfig`, and :class:`ApiConfig`.

**Response models** -- produced by the transport and stored in the cache:
    :class:`HttpResponse` and :class:`RequestStatus`.
"""

from __future__ import annotations

import enum
import time
from http import HTTPStatus
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class RequestConfig(BaseModel):
    """Default HTTP request settings applied to every request of a :class:`~fetchcache.api.WebApi`."""

    timeout_ms: int = Field(
        default=15000, gt=0, description="Request timeout in milliseconds"
    )
    max_workers: int = Field(
        default=8, gt=0, description="Maximum number of concurrent fetches"
    )
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class CacheConfig(BaseModel):
    """Response cache settings."""

    enabled: bool = Field(default=True, description="Enable response caching")
    default_cache_ms: int = Field(
        default=0,
        ge=0,
        description="Cache time used by the CLI when --cache-ms is not given",
    )


class ApiConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/fetchcache/config.json``.

    Loaded and saved by :func:`~fetchcache.config.load_config` and
    :func:`~fetchcache.config.save_config`.  See
    :func:`~fetchcache.config.resolve_config` for the precedence chain.
    """

    base_url: Optional[str] = Field(
        default=None, description="Base URL every request path is appended to"
    )
    persistent_params: dict[str, str] = Field(
        default_factory=dict,
        description="Query parameters included with every request",
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


# --- Responses ---


CACHEABLE_STATUS_CODES = frozenset({200, 203, 204, 206, 300, 301, 404, 405, 410, 414, 501})
"""Status codes that are heuristically cacheable (RFC 7231, section 6.1)."""


def now_millis() -> float:
    """Return the current wall-clock time in milliseconds since the epoch."""
    return time.time() * 1000


class RequestStatus(str, enum.Enum):
    """Lifecycle state of an :class:`~fetchcache.client.request.ApiRequest`.

    ``PENDING`` moves to exactly one of the terminal states.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class HttpResponse(BaseModel):
    """A simplified, immutable HTTP response.

    Attributes:
        status_code: The HTTP status code.
        body: The decoded response body.
        content_type: Value of the ``Content-Type`` header.
        expires: Expiration timestamp from the ``Expires`` header, in
            milliseconds since the epoch.  ``0`` when the server sent none.
    """

    model_config = ConfigDict(frozen=True)

    status_code: int
    body: str = ""
    content_type: str = "text/plain"
    expires: float = 0

    def __str__(self) -> str:
        return f"HTTP {self.status_code} {self.reason_phrase}".rstrip()

    @property
    def reason_phrase(self) -> str:
        try:
            return HTTPStatus(self.status_code).phrase
        except ValueError:
            return ""

    @property
    def is_cacheable(self) -> bool:
        """Whether the status code may be cached without explicit freshness info."""
        return self.status_code in CACHEABLE_STATUS_CODES

    def cacheable_millis_left(self, now: Optional[float] = None) -> float:
        """Return how long the server says this response stays fresh.

        Based on the ``Expires`` header; :class:`~fetchcache.api.WebApi`
        never caches a response for longer than this.  Always ``0`` for status codes that
        are not reliably cacheable, and never negative.

        Args:
            now: Current time in milliseconds; defaults to :func:`now_millis`.
        """
        if not self.is_cacheable:
            return 0
        current = now_millis() if now is None else now
        return max(self.expires - current, 0)
