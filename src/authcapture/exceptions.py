"""Exception hierarchy for authcapture.

All exceptions inherit from :class:`AuthCaptureError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`authcapture.exit_codes`.
The capture process converts an uncaught ``AuthCaptureError`` into its exit
code, and :func:`authcapture.app.main` does the same for the CLI.

The supervisor never lets these escape its public operations; they are turned
into :class:`~authcapture.models.ControlResult` values instead.

Subclass hierarchy::

    AuthCaptureError (exit 1)
    +-- InvalidUsageError        (exit 2)
    |   +-- InvalidTargetError   (exit 2)
    +-- CredentialNotFoundError  (exit 3)
    +-- CredentialFormatError    (exit 1)
    +-- DriverNotFoundError      (exit 4)
    +-- CaptureError             (exit 5)
    +-- ReloadError              (exit 6)
    +-- ConfigError              (exit 1)
"""

from authcapture.exit_codes import (
    EXIT_CAPTURE_FAILURE,
    EXIT_CREDENTIAL_NOT_FOUND,
    EXIT_DRIVER_NOT_FOUND,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_RELOAD_FAILURE,
)


class AuthCaptureError(Exception):
    """Base exception for all authcapture errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(AuthCaptureError):
    """Raised for invalid CLI arguments or capture-process arguments."""

    exit_code = EXIT_INVALID_USAGE


class InvalidTargetError(InvalidUsageError):
    """Raised when a relogin target index is not a non-negative integer."""


class CredentialNotFoundError(AuthCaptureError):
    """Raised when the credential file for an account index does not exist."""

    exit_code = EXIT_CREDENTIAL_NOT_FOUND


class CredentialFormatError(AuthCaptureError):
    """Raised when a credential file exists but is not a valid JSON record."""

    exit_code = EXIT_GENERIC_FAILURE


class DriverNotFoundError(AuthCaptureError):
    """Raised when the browser executable cannot be resolved to an existing file."""

    exit_code = EXIT_DRIVER_NOT_FOUND


class CaptureError(AuthCaptureError):
    """Raised when the browser session fails or the operator never continues."""

    exit_code = EXIT_CAPTURE_FAILURE


class ReloadError(AuthCaptureError):
    """Raised when a reload sink cannot be notified."""

    exit_code = EXIT_RELOAD_FAILURE


class ConfigError(AuthCaptureError):
    """Raised for configuration problems (invalid project file, bad env values)."""

    exit_code = EXIT_GENERIC_FAILURE
