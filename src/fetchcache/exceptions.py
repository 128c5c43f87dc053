"""Exception hierarchy for fetchcache.

All exceptions inherit from :class:`FetchcacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`fetchcache.exit_codes`.

Cache and tracker operations never raise: absent keys yield ``None`` or
``False``.  Only the transport raises, and
:class:`~fetchcache.api.WebApi` converts those errors into a failed
request status before listeners are notified.  The CLI entry point in
:func:`fetchcache.app.main` catches ``FetchcacheError`` and exits with the
matching code.

Subclass hierarchy::

    FetchcacheError (exit 1)
    +-- InvalidUsageError     (exit 2)
    +-- ConfigError           (exit 1)
    +-- ConnectionError_      (exit 6)
        +-- RequestTimeoutError (exit 6)
"""

from fetchcache.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
)


class FetchcacheError(Exception):
    """Base exception for all fetchcache errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(FetchcacheError):
    """Raised for invalid CLI arguments (e.g. a malformed ``key=value`` parameter)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(FetchcacheError):
    """Raised for configuration problems (invalid JSON, failed validation, missing base URL)."""

    exit_code = EXIT_GENERIC_FAILURE


class ConnectionError_(FetchcacheError):
    """Raised on network-level failures (DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class RequestTimeoutError(ConnectionError_):
    """Raised by the transport when a request exceeds its configured timeout."""
