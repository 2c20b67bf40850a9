"""
Centralized error types and constants for the storefront server.

This module defines standardized error types and constants to ensure
consistent error handling across the REST and real-time layers.
"""

from enum import Enum
from typing import Any


class ErrorType(Enum):
    """Standardized error types for consistent categorization."""

    # Authentication and Authorization
    AUTHENTICATION_FAILED = "authentication_failed"
    AUTHORIZATION_DENIED = "authorization_denied"

    # Validation Errors
    VALIDATION_ERROR = "validation_error"
    INVALID_INPUT = "invalid_input"
    INVALID_FORMAT = "invalid_format"
    UNKNOWN_EVENT = "unknown_event"

    # Resource Errors
    RESOURCE_NOT_FOUND = "resource_not_found"
    RESOURCE_ALREADY_EXISTS = "resource_already_exists"

    # Database Errors
    DATABASE_ERROR = "database_error"

    # System
    INTERNAL_ERROR = "internal_error"

    # Real-time Communication
    MESSAGE_PROCESSING_ERROR = "message_processing_error"


def create_standard_error_response(
    error_type: ErrorType,
    message: str,
    user_friendly: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a standardized REST error response.

    Args:
        error_type: The type of error
        message: Technical error message
        user_friendly: User-friendly error message (optional)
        details: Additional error details (optional)

    Returns:
        Standardized error response dictionary
    """
    from datetime import UTC, datetime

    return {
        "error": {
            "type": error_type.value,
            "message": message,
            "user_friendly": user_friendly or message,
            "details": details or {},
            "timestamp": datetime.now(UTC).isoformat(),
        }
    }


def create_websocket_error_response(
    error_type: ErrorType,
    message: str,
    user_friendly: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a standardized WebSocket error payload.

    Args:
        error_type: The type of error
        message: Technical error message
        user_friendly: User-friendly error message (optional)
        details: Additional error details (optional)

    Returns:
        WebSocket error response dictionary
    """
    return {
        "type": "error",
        "error_type": error_type.value,
        "message": message,
        "user_friendly": user_friendly or message,
        "details": details or {},
    }


class ErrorMessages:
    """Common error messages for consistent user experience."""

    # Authentication
    AUTHENTICATION_REQUIRED = "Authentication required"
    INVALID_CREDENTIALS = "Invalid email or password"
    INSUFFICIENT_PRIVILEGES = "Not authorized"
    TOKEN_MISSING = "Unauthorized: token missing"
    TOKEN_INVALID = "Unauthorized: invalid token"

    # Validation
    INVALID_INPUT = "Invalid input provided"
    MISSING_REQUIRED_FIELD = "Required field is missing"
    INVALID_FORMAT = "Invalid format provided"
    UNKNOWN_EVENT = "Unknown event"

    # Resources
    RESOURCE_NOT_FOUND = "Resource not found"
    PRODUCT_NOT_FOUND = "Product not found"
    IMAGE_NOT_FOUND = "Product has no image"
    EMAIL_ALREADY_REGISTERED = "Email is already registered"

    # System
    INTERNAL_ERROR = "An internal error occurred"

    # Real-time
    MESSAGE_PROCESSING_ERROR = "Error processing message"
