"""Shared utilities and infrastructure.

This module contains common utilities used throughout the application.
"""

from __future__ import annotations

from qbtui.utils.exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    ConnectionFailedError,
    LocalIOError,
    NetworkError,
    OperationError,
    QBTUIError,
    TimezoneError,
    ValidationError,
)
from qbtui.utils.logging_config import LoggingContext, get_logger, setup_logging

__all__ = [
    # Exceptions
    "APIError",
    "AuthenticationError",
    "ConfigurationError",
    "ConnectionFailedError",
    "LocalIOError",
    "NetworkError",
    "OperationError",
    "QBTUIError",
    "TimezoneError",
    "ValidationError",
    # Logging
    "LoggingContext",
    "get_logger",
    "setup_logging",
]
