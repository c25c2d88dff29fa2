"""Copycopter client exceptions.

This module defines the exception hierarchy for the Copycopter client.
All exceptions inherit from :class:`CopycopterException`.

Network failures are recoverable and are handled inside the sync
loop; they never reach callers of the i18n backend. Configuration
errors are programming mistakes and are raised immediately.

Example:
    Handling a failed download::

        from copycopter_client.exceptions import (
            NetworkException,
            HttpStatusException,
        )

        try:
            blurbs = client.fetch()
        except HttpStatusException as e:
            print(f"Server answered {e.status_code}")
        except NetworkException as e:
            print(f"Download failed ({e.kind.value}): {e}")
"""

from enum import Enum
from typing import Optional


class CopycopterException(Exception):
    """Base class for all Copycopter exceptions.

    Args:
        message: The error message describing the exception.
        cause: The underlying exception that caused this error, if any.

    Attributes:
        cause: The underlying cause of this exception, if any.
    """

    def __init__(self, message: str = "", cause: Exception = None):
        super().__init__(message)
        self.cause = cause


class IllegalStateException(CopycopterException):
    """Raised when an operation is invoked on an illegal state.

    Example:
        - Deploying before the configuration has been applied
    """
    pass


class ConfigurationException(CopycopterException):
    """Raised when there is a configuration error.

    Example:
        - Negative timeout values
        - A non-positive polling delay
        - An unreadable or malformed YAML file
    """
    pass


class UnknownOptionException(ConfigurationException):
    """Raised when reading or writing an option that does not exist.

    Args:
        option: The offending option name.
    """

    def __init__(self, option: str):
        super().__init__(f"Unknown configuration option: {option!r}")
        self._option = option

    @property
    def option(self) -> str:
        """Get the option name that was not recognized."""
        return self._option


class NetworkErrorKind(Enum):
    """Classification of transport failures."""

    CONNECT_TIMEOUT = "connect-timeout"
    READ_TIMEOUT = "read-timeout"
    HTTP_STATUS = "http-status"


class NetworkException(CopycopterException):
    """Raised when a request to the Copycopter server fails.

    Args:
        message: The error message.
        kind: The failure classification.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str = "",
        kind: NetworkErrorKind = NetworkErrorKind.CONNECT_TIMEOUT,
        cause: Exception = None,
    ):
        super().__init__(message, cause)
        self._kind = kind

    @property
    def kind(self) -> NetworkErrorKind:
        """Get the failure classification."""
        return self._kind


class ConnectTimeoutException(NetworkException):
    """Raised when a connection cannot be established within the open timeout."""

    def __init__(self, message: str = "", cause: Exception = None):
        super().__init__(message, NetworkErrorKind.CONNECT_TIMEOUT, cause)


class ReadTimeoutException(NetworkException):
    """Raised when the server does not answer within the read timeout."""

    def __init__(self, message: str = "", cause: Exception = None):
        super().__init__(message, NetworkErrorKind.READ_TIMEOUT, cause)


class HttpStatusException(NetworkException):
    """Raised when the server answers with an unexpected status.

    Args:
        message: The error message.
        status_code: The HTTP status code received.
        body: The response body, if it could be read.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        body: Optional[str] = None,
        cause: Exception = None,
    ):
        super().__init__(message, NetworkErrorKind.HTTP_STATUS, cause)
        self._status_code = status_code
        self._body = body

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def body(self) -> Optional[str]:
        return self._body
