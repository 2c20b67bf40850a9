"""
FastAPI exception handlers.

Domain errors and HTTP errors are rendered as the standard error body
produced by create_standard_error_response.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..error_types import ErrorMessages, ErrorType, create_standard_error_response
from ..exceptions import (
    AuthenticationError,
    DatabaseError,
    ResourceNotFoundError,
    StorefrontError,
    ValidationError,
)
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

# Most specific classes first
DOMAIN_ERROR_MAPPINGS: list[tuple[type[StorefrontError], int, ErrorType]] = [
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED, ErrorType.AUTHENTICATION_FAILED),
    (ValidationError, status.HTTP_400_BAD_REQUEST, ErrorType.VALIDATION_ERROR),
    (ResourceNotFoundError, status.HTTP_404_NOT_FOUND, ErrorType.RESOURCE_NOT_FOUND),
    (DatabaseError, status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorType.DATABASE_ERROR),
]

HTTP_STATUS_ERROR_TYPES = {
    status.HTTP_400_BAD_REQUEST: ErrorType.INVALID_INPUT,
    status.HTTP_401_UNAUTHORIZED: ErrorType.AUTHENTICATION_FAILED,
    status.HTTP_403_FORBIDDEN: ErrorType.AUTHORIZATION_DENIED,
    status.HTTP_404_NOT_FOUND: ErrorType.RESOURCE_NOT_FOUND,
    status.HTTP_409_CONFLICT: ErrorType.RESOURCE_ALREADY_EXISTS,
}


def status_for_error(exc: StorefrontError) -> tuple[int, ErrorType]:
    for error_class, status_code, error_type in DOMAIN_ERROR_MAPPINGS:
        if isinstance(exc, error_class):
            return status_code, error_type
    return status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorType.INTERNAL_ERROR


def register_error_handlers(app: FastAPI, include_details: bool = False) -> None:
    """
    Register exception handlers for the application.

    Args:
        app: FastAPI application instance
        include_details: Whether to include error details in responses
    """

    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
        status_code, error_type = status_for_error(exc)
        message = exc.message if status_code < 500 or include_details else ErrorMessages.INTERNAL_ERROR
        body = create_standard_error_response(
            error_type, message, exc.user_friendly, exc.details if include_details else None
        )
        return JSONResponse(status_code=status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        logger.info("Request validation failed", path=request.url.path, error_count=len(errors))
        fields = [".".join(str(part) for part in err.get("loc", ()) if part != "body") for err in errors]
        body = create_standard_error_response(
            ErrorType.INVALID_INPUT,
            "Request validation failed",
            ErrorMessages.INVALID_INPUT,
            {"fields": fields},
        )
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        error_type = HTTP_STATUS_ERROR_TYPES.get(exc.status_code, ErrorType.INTERNAL_ERROR)
        detail = exc.detail if isinstance(exc.detail, str) else ErrorMessages.INTERNAL_ERROR
        body = create_standard_error_response(error_type, detail, detail)
        return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", path=request.url.path, error=str(exc), exc_info=True)
        body = create_standard_error_response(ErrorType.INTERNAL_ERROR, ErrorMessages.INTERNAL_ERROR)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)

    logger.info("Error handlers registered for FastAPI application")
