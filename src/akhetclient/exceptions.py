"""Exception hierarchy for akhetclient.

All exceptions inherit from :class:`AkhetError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`akhetclient.exit_codes`. Library callers catch the specific
subclasses; the ``akhet`` entry point catches ``AkhetError`` and exits
with the matching code.

Subclass hierarchy::

    AkhetError (exit 1)
    +-- InvalidProtocol      (exit 2)
    +-- MethodNotSupported   (exit 2)
    +-- Unauthorized         (exit 3)
    +-- ServerSideError      (exit 4)
    +-- InvalidHTTPStatus    (exit 5)
    +-- ServerNotAvailable   (exit 6)
    +-- VersionMismatch      (exit 7)
    +-- ConfigError          (exit 1)

None of these are retried by the client. A failed call is reported once.
"""

from typing import Any

from akhetclient.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SERVER_ERROR,
    EXIT_SERVER_SIDE_ERROR,
    EXIT_VERSION_MISMATCH,
)


class AkhetError(Exception):
    """Base exception for all akhetclient errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`akhetclient.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidProtocol(AkhetError):
    """Raised at construction time when the scheme is neither ``http`` nor ``https``."""

    exit_code = EXIT_INVALID_USAGE


class MethodNotSupported(AkhetError):
    """Raised before any I/O when a request method other than GET/POST is asked for."""

    exit_code = EXIT_INVALID_USAGE


class ServerNotAvailable(AkhetError):
    """Raised when the server cannot be reached or a 200 response carries no body."""

    exit_code = EXIT_CONNECTION_ERROR


class VersionMismatch(AkhetError):
    """Raised when the response envelope advertises a different API version.

    Args:
        expected: The API version this client speaks.
        received: The version reported by the server.
    """

    exit_code = EXIT_VERSION_MISMATCH

    def __init__(self, expected: str, received: Any):
        super().__init__(
            f"Server API version not allowed: expected {expected!r}, got {received!r}"
        )
        self.expected = expected
        self.received = received


class ServerSideError(AkhetError):
    """Raised when the server reports an application-level error.

    The server's message and numeric code are kept as attributes so that
    callers can branch on ``errorno`` without parsing the string.

    Args:
        message: The ``error`` string from the response envelope.
        errorno: The ``errorno`` value from the response envelope, as sent
            (normally an integer, ``None`` when the server omits it).
    """

    exit_code = EXIT_SERVER_SIDE_ERROR

    def __init__(self, message: str, errorno: Any):
        super().__init__(f"{message} (errorno {errorno})")
        self.message = message
        self.errorno = errorno


class Unauthorized(AkhetError):
    """Raised when the server answers HTTP 401."""

    exit_code = EXIT_AUTH_FAILURE


class InvalidHTTPStatus(AkhetError):
    """Raised for any HTTP status other than 200 and 401.

    Args:
        status_code: The status code returned by the server.
        body: The raw response body, kept for diagnostics.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"Invalid HTTP status {status_code}")
        self.status_code = status_code
        self.body = body


class ConfigError(AkhetError):
    """Raised for local configuration problems (missing profiles, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE
