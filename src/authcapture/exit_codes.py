"""Numeric process exit codes shared by the CLI and the capture process.

The capture process reports its outcome only through its exit code, so each
failure class gets a distinct value. The supervisor records the code verbatim
and treats anything non-zero as a failed capture.

Example::

    $ python -m authcapture.capture relogin 7
    ERROR: Auth file not found: configs/auth/auth-7.json
    $ echo $?
    3   # EXIT_CREDENTIAL_NOT_FOUND
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, including an invalid account index."""

EXIT_CREDENTIAL_NOT_FOUND = 3
"""The credential file for the requested account index does not exist."""

EXIT_DRIVER_NOT_FOUND = 4
"""The browser executable could not be located."""

EXIT_CAPTURE_FAILURE = 5
"""The browser session failed or the continuation signal never arrived."""

EXIT_RELOAD_FAILURE = 6
"""The reload sink could not be notified."""
