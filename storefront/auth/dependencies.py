"""
Authentication dependencies for the storefront API.

This module provides dependency injection functions for
authentication and authorization in FastAPI endpoints.
"""

from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_async_session
from ..error_types import ErrorMessages
from ..exceptions import AuthError, LoggedHTTPException
from ..models.user import User
from ..utils.error_logging import create_context_from_request
from .tokens import decode_access_token
from .users import get_user_by_id

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_async_session),
) -> User:
    """Resolve the bearer token to an account or raise 401."""
    context = create_context_from_request(request)
    token = credentials.credentials if credentials else None
    try:
        claims = decode_access_token(token)
    except AuthError as e:
        raise LoggedHTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            context=context,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    user = await get_user_by_id(session, claims["sub"])
    if user is None:
        context.user_id = str(claims["sub"])
        raise LoggedHTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=ErrorMessages.TOKEN_INVALID,
            context=context,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_admin(request: Request, current_user: User = Depends(get_current_user)) -> User:
    """Get current admin or raise 403."""
    if not current_user.is_admin:
        context = create_context_from_request(request)
        context.user_id = str(current_user.id)
        raise LoggedHTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=ErrorMessages.INSUFFICIENT_PRIVILEGES,
            context=context,
        )
    return current_user


__all__ = ["bearer_scheme", "get_current_user", "get_current_admin"]
