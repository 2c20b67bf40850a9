"""
Exception hierarchy and error handling utilities for the storefront server.

Every domain error carries an ErrorContext and logs itself on construction,
so call sites only need to raise (or use log_and_raise) and never log twice.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from fastapi import HTTPException

from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ErrorContext:
    """
    Contextual information for error handling.

    Provides structured context for error reporting and debugging.
    """

    user_id: str | None = None
    connection_id: str | None = None
    event_type: str | None = None
    session_id: str | None = None
    request_id: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "user_id": self.user_id,
            "connection_id": self.connection_id,
            "event_type": self.event_type,
            "session_id": self.session_id,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class StorefrontError(Exception):
    """
    Base exception for all storefront errors.

    Provides structured error handling with context and metadata
    for proper error categorization and debugging.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
        user_friendly: str | None = None,
    ):
        """
        Initialize storefront error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
            user_friendly: User-friendly error message
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.user_friendly = user_friendly or message
        self.timestamp = datetime.now()

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with structured context."""
        logger.error(
            "Storefront error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
            timestamp=self.timestamp.isoformat(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "user_friendly": self.user_friendly,
            "context": self.context.to_dict(),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class AuthenticationError(StorefrontError):
    """Authentication and authorization errors."""

    def __init__(self, message: str, context: ErrorContext | None = None, auth_type: str = "unknown", **kwargs):
        super().__init__(message, context, **kwargs)
        self.auth_type = auth_type
        self.details["auth_type"] = auth_type


class AuthFailure(Enum):
    """Why a credential was refused during the real-time handshake."""

    MISSING = "missing"
    INVALID = "invalid"


class AuthError(AuthenticationError):
    """A credential could not be turned into an identity. Terminates the handshake."""

    reason: AuthFailure = AuthFailure.INVALID

    def __init__(self, message: str, context: ErrorContext | None = None, **kwargs):
        super().__init__(message, context, auth_type="jwt", **kwargs)
        self.details["reason"] = self.reason.value


class MissingCredentialError(AuthError):
    """No token was supplied in the handshake auth payload or bearer header."""

    reason = AuthFailure.MISSING


class InvalidCredentialError(AuthError):
    """The token failed signature, expiry or claim validation."""

    reason = AuthFailure.INVALID


class DatabaseError(StorefrontError):
    """Database operation errors."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        operation: str = "unknown",
        table: str | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.operation = operation
        self.table = table
        self.details["operation"] = operation
        if table:
            self.details["table"] = table


# Chat persistence failures are plain database errors
PersistenceError = DatabaseError


class ValidationError(StorefrontError):
    """Data validation errors."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        field: str | None = None,
        value: Any | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.field = field
        self.value = value
        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = str(value)


class ConfigurationError(StorefrontError):
    """Configuration and setup errors."""

    def __init__(self, message: str, context: ErrorContext | None = None, config_key: str | None = None, **kwargs):
        super().__init__(message, context, **kwargs)
        self.config_key = config_key
        if config_key:
            self.details["config_key"] = config_key


class ResourceNotFoundError(StorefrontError):
    """Resource not found errors."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        **kwargs,
    ):
        super().__init__(message, context, **kwargs)
        self.resource_type = resource_type
        self.resource_id = resource_id
        if resource_type:
            self.details["resource_type"] = resource_type
        if resource_id:
            self.details["resource_id"] = resource_id


class ProfileLookupError(ResourceNotFoundError):
    """The account behind a valid token could not be loaded. Never fatal to a handshake."""

    def __init__(self, message: str, context: ErrorContext | None = None, user_id: str | None = None, **kwargs):
        super().__init__(message, context, resource_type="user", resource_id=user_id, **kwargs)


class LoggedHTTPException(HTTPException):
    """HTTPException that logs itself with request context when raised."""

    def __init__(
        self,
        status_code: int,
        detail: Any = None,
        context: ErrorContext | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.context = context or ErrorContext()
        log = logger.warning if status_code < 500 else logger.error
        log("HTTP error raised", status_code=status_code, detail=detail, context=self.context.to_dict())


def create_error_context(**kwargs) -> ErrorContext:
    """
    Create an error context with the given parameters.

    Args:
        **kwargs: Context parameters

    Returns:
        ErrorContext object
    """
    return ErrorContext(**kwargs)
