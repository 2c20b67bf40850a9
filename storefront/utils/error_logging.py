"""
Error logging utilities for the storefront server.

These helpers make sure an error is logged with its context exactly once
before it propagates, and build ErrorContext objects from FastAPI requests.
"""

from typing import Any

from fastapi import Request

from ..exceptions import ErrorContext, StorefrontError, create_error_context
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def log_and_raise(
    exception_class: type[StorefrontError],
    message: str,
    context: ErrorContext | None = None,
    details: dict[str, Any] | None = None,
    user_friendly: str | None = None,
    logger_name: str | None = None,
    **kwargs: Any,
) -> None:
    """
    Log an error and raise a storefront exception.

    Args:
        exception_class: The storefront exception class to raise
        message: Technical error message
        context: Error context information
        details: Additional error details
        user_friendly: User-friendly error message
        logger_name: Specific logger name to use (defaults to current module)
        **kwargs: Extra keyword arguments for the exception class (operation, field, ...)

    Raises:
        The specified storefront exception
    """
    error_logger = get_logger(logger_name) if logger_name else logger

    if context is None:
        context = create_error_context()

    error_logger.error(
        f"Error logged and exception raised: {message}",
        error_type=exception_class.__name__,
        details=details or {},
        user_friendly=user_friendly,
    )

    raise exception_class(
        message,
        context=context,
        details=details,
        user_friendly=user_friendly,
        **kwargs,
    )


def create_context_from_request(request: Request | None) -> ErrorContext:
    """
    Create an error context from a FastAPI request.

    Args:
        request: The incoming request (may be None in direct calls)

    Returns:
        ErrorContext populated with request metadata
    """
    context = create_error_context()
    if request is None:
        return context

    context.request_id = request.headers.get("x-request-id")
    context.metadata.update(
        {
            "path": str(request.url.path),
            "method": request.method,
            "client_host": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent", ""),
        }
    )
    return context
