"""Exception classes for Subsonic API client."""

from typing import Dict, Optional, Type


class SubsonicException(Exception):
    """Base exception for every failure raised by this library."""

    pass


class NetworkFailure(SubsonicException):
    """Transport-level failure: connection error, timeout, dropped body or HTTP 5xx.

    Retried automatically only for read-only operations.

    Attributes:
        status_code: HTTP status code if the failure came from an HTTP response
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """False for HTTP client errors (4xx), which repeat on every attempt."""
        return self.status_code is None or self.status_code >= 500


class UnsupportedVersionError(SubsonicException):
    """Server protocol version is below what the client or an operation needs.

    Attributes:
        server_version: Version reported by the server
        required_version: Minimum version that would have been accepted
        operation: Operation that could not be served, or None if the whole
            server is below the client floor
    """

    def __init__(self, server_version, required_version, operation=None):
        self.server_version = server_version
        self.required_version = required_version
        self.operation = operation
        if operation is None:
            message = (
                f"Server API version {server_version} is older than the "
                f"minimum supported version {required_version}"
            )
        else:
            message = (
                f"Operation {operation} requires API version {required_version}, "
                f"server supports {server_version}"
            )
        super().__init__(message)


class InvalidRequestError(SubsonicException, ValueError):
    """Request could not be built locally (e.g., missing required parameter).

    Raised before any network call is made.
    """

    pass


class MalformedResponseError(SubsonicException):
    """Response body does not decode as a Subsonic envelope of the expected format."""

    pass


class RequestCancelledError(SubsonicException):
    """Request was cancelled by the caller. Never retried."""

    pass


class SubsonicError(SubsonicException):
    """Error reported by the server in a failed envelope.

    Attributes:
        code: Subsonic error code
        message: Error message from server
    """

    def __init__(self, code: int, message: str):
        """Initialize Subsonic error.

        Args:
            code: Subsonic error code (0, 10, 20, 30, 40, 41, 50, 60, 70)
            message: Human-readable error message
        """
        self.code = code
        self.message = message
        super().__init__(f"Subsonic Error {code}: {message}")


class SubsonicParameterError(SubsonicError):
    """Required parameter missing (error code 10)."""

    pass


class SubsonicVersionError(SubsonicError):
    """API version incompatibility (error codes 20, 30)."""

    pass


class ClientVersionTooOldError(SubsonicVersionError):
    """Incompatible protocol; client must upgrade (code 20)."""

    pass


class ServerVersionTooOldError(SubsonicVersionError):
    """Incompatible protocol; server must upgrade (code 30)."""

    pass


class SubsonicAuthenticationError(SubsonicError):
    """Authentication failed (error codes 40, 41, 50).

    Raised when username/password is incorrect, token auth is not supported,
    or the user is not authorized.
    """

    pass


class TokenAuthenticationNotSupportedError(SubsonicAuthenticationError):
    """Token authentication not supported for LDAP users (code 41)."""

    pass


class SubsonicAuthorizationError(SubsonicAuthenticationError):
    """User not authorized for requested action (error code 50)."""

    pass


class SubsonicTrialError(SubsonicError):
    """Trial period expired (error code 60)."""

    pass


class SubsonicNotFoundError(SubsonicError):
    """Requested data not found (error code 70)."""

    pass


_ERROR_CLASSES: Dict[int, Type[SubsonicError]] = {
    10: SubsonicParameterError,
    20: ClientVersionTooOldError,
    30: ServerVersionTooOldError,
    40: SubsonicAuthenticationError,
    41: TokenAuthenticationNotSupportedError,
    50: SubsonicAuthorizationError,
    60: SubsonicTrialError,
    70: SubsonicNotFoundError,
}


def error_for_code(code: int, message: str) -> SubsonicError:
    """Build the exception matching a server error code.

    Unknown codes (including 0, generic error) map to the base SubsonicError;
    the code is always preserved verbatim.
    """
    return _ERROR_CLASSES.get(code, SubsonicError)(code, message)
