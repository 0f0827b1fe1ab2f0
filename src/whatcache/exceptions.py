"""Exception hierarchy for whatcache.

All exceptions inherit from :class:`WhatCacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`whatcache.exit_codes`.
The CLI entry point :func:`whatcache.app.main` catches ``WhatCacheError`` and
exits with the matching code.

Errors raised by the API client during an operation pass through
:class:`~whatcache.facade.CachingClient` untouched: the caller sees the very
exception object the client raised.

Subclass hierarchy::

    WhatCacheError          (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- AuthError           (exit 3)
    +-- NotFoundError       (exit 4)
    +-- ServerError         (exit 5)
    +-- ConnectionError_    (exit 6)
    +-- APIError            (exit 8)
    +-- ConstructionError   (exit 9)
    |   +-- StoreError      (exit 9)
    +-- ConfigError         (exit 1)
"""

from whatcache.exit_codes import (
    EXIT_API_ERROR,
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_CONSTRUCTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class WhatCacheError(Exception):
    """Base exception for all whatcache errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(WhatCacheError):
    """Raised for invalid CLI arguments or an unknown operation name."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(WhatCacheError):
    """Raised when login fails or an operation needs a session that does not exist."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(WhatCacheError):
    """Raised when the tracker returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(WhatCacheError):
    """Raised when the tracker returns an HTTP error status other than 401/403/404."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(WhatCacheError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class APIError(WhatCacheError):
    """Raised when ``ajax.php`` answers with ``"status": "failure"`` or a non-JSON body.

    Args:
        message: Error text, usually the envelope's ``error`` field.
        action: The ``ajax.php`` action that failed, when known.
    """

    exit_code = EXIT_API_ERROR

    def __init__(self, message: str, action: str | None = None):
        super().__init__(message)
        self.action = action


class ConstructionError(WhatCacheError):
    """Raised when :func:`~whatcache.facade.open_client` cannot build a client."""

    exit_code = EXIT_CONSTRUCTION_ERROR


class StoreError(ConstructionError):
    """Raised when the response store cannot be opened at the configured path."""


class ConfigError(WhatCacheError):
    """Raised for configuration problems (invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE
