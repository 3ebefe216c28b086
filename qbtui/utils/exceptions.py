"""Exception hierarchy for qbtui.

Every fallible operation in the client raises one of these; the session
state machine decides how each one is surfaced.
"""

from __future__ import annotations

from typing import Any


class QBTUIError(Exception):
    """Base exception for all qbtui errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize qbtui error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class NetworkError(QBTUIError):
    """Network-related errors."""


class ConnectionFailedError(NetworkError):
    """Malformed endpoint, unreachable host or timed out request."""


class APIError(NetworkError):
    """The WebUI answered with a non-success status."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        body: str = "",
        details: dict[str, Any] | None = None,
    ):
        """Initialize API error with the HTTP status and a body excerpt."""
        super().__init__(message, details)
        self.status = status
        self.body = body


class AuthenticationError(QBTUIError):
    """Bad credentials, unexpected login response or expired session."""


class OperationError(QBTUIError):
    """Pause, resume, delete or add was rejected."""


class LocalIOError(QBTUIError):
    """A local file could not be read."""


class ValidationError(QBTUIError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration or settings errors."""


class TimezoneError(ValidationError):
    """Unknown timezone name."""
