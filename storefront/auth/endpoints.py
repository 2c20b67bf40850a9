"""
Authentication endpoints for the storefront API.

Accounts register with an e-mail address and password and log in to obtain
a signed access token. The same token authorizes catalog writes and the
real-time chat handshake.
"""

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_async_session
from ..error_types import ErrorMessages
from ..exceptions import LoggedHTTPException, ValidationError
from ..models.user import User, UserRole
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.error_logging import create_context_from_request
from .tokens import create_access_token
from .users import authenticate_user, create_user, get_user_by_email

logger = get_logger("auth.endpoints")

auth_router = APIRouter(prefix="/auth", tags=["auth"])


class UserRead(BaseModel):
    """Public view of an account."""

    id: str
    email: str
    role: UserRole

    @classmethod
    def from_user(cls, user: User) -> "UserRead":
        return cls(id=str(user.id), email=user.email, role=user.role)


class UserCreate(BaseModel):
    """Schema for account registration."""

    email: EmailStr
    password: str
    role: UserRole = UserRole.USER

    @field_validator("password")
    @classmethod
    def validate_password_not_empty(cls, v: str) -> str:
        """Validate that password is not empty."""
        if not v or not v.strip():
            raise ValueError("Password cannot be empty")
        return v


class RegisterResponse(BaseModel):
    user: UserRead


class LoginRequest(BaseModel):
    """Schema for login requests."""

    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    """Schema for login responses."""

    token: str
    user: UserRead


@auth_router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_create: UserCreate,
    request: Request,
    session: AsyncSession = Depends(get_async_session),
) -> RegisterResponse:
    """
    Register a new account.

    Returns 409 if the e-mail address is already registered.
    """
    logger.info("Registration attempt", role=user_create.role.value)

    if await get_user_by_email(session, user_create.email) is not None:
        context = create_context_from_request(request)
        context.metadata["operation"] = "register_user"
        raise LoggedHTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=ErrorMessages.EMAIL_ALREADY_REGISTERED,
            context=context,
        )

    try:
        user = await create_user(session, user_create.email, user_create.password, role=user_create.role)
    except ValidationError as e:
        # Lost a race with a concurrent registration of the same address
        context = create_context_from_request(request)
        context.metadata["operation"] = "register_user"
        raise LoggedHTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=ErrorMessages.EMAIL_ALREADY_REGISTERED,
            context=context,
        ) from e

    return RegisterResponse(user=UserRead.from_user(user))


@auth_router.post("/login", response_model=LoginResponse)
async def login_user(
    login_request: LoginRequest,
    request: Request,
    session: AsyncSession = Depends(get_async_session),
) -> LoginResponse:
    """Exchange credentials for an access token."""
    user = await authenticate_user(session, login_request.email, login_request.password)
    if user is None:
        context = create_context_from_request(request)
        context.metadata["operation"] = "login_user"
        raise LoggedHTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=ErrorMessages.INVALID_CREDENTIALS,
            context=context,
        )

    token = create_access_token(str(user.id), user.role.value)
    logger.info("Successful login", user_id=str(user.id))
    return LoginResponse(token=token, user=UserRead.from_user(user))
