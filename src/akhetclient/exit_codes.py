"""Numeric process exit codes used by the ``akhet`` command line tool.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~akhetclient.exceptions.AkhetError` subclass.
Shell wrappers can inspect the exit code to tell the failure classes apart
without parsing stderr.

Example::

    $ akhet instance info deadbeef
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the server rejected the credentials
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments (bad protocol, bad method)."""

EXIT_AUTH_FAILURE = 3
"""The server answered HTTP 401."""

EXIT_SERVER_SIDE_ERROR = 4
"""The server reported an application-level error inside the envelope."""

EXIT_SERVER_ERROR = 5
"""The server answered with an unexpected HTTP status, or did not answer at all."""

EXIT_CONNECTION_ERROR = 6
"""The server answered but the body was lost, empty or not an envelope."""

EXIT_VERSION_MISMATCH = 7
"""The server speaks a different API protocol version."""

EXIT_INTERRUPTED = 130
"""The command was cancelled with Ctrl-C."""
