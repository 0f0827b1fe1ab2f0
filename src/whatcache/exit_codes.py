"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~whatcache.exceptions.WhatCacheError` subclass.
Shell wrappers can inspect the exit code to tell a rejected login from an
unreachable tracker without parsing stderr.

Example::

    $ whatcache fetch get_artist 100
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the tracker rejected the credentials
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""Login failed or the session was rejected by the tracker."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The tracker returned an HTTP error status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_API_ERROR = 8
"""The tracker answered with a failure envelope or a body that is not JSON."""

EXIT_CONSTRUCTION_ERROR = 9
"""The caching client could not be built (bad base URL, unusable store path)."""
