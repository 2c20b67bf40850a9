"""
Account persistence helpers.

Registration and login use the session-level helpers; the chat handshake
uses AccountDirectory, which owns its own short-lived sessions and turns
every lookup failure into a ProfileLookupError.
"""

import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..exceptions import ProfileLookupError, ValidationError
from ..models.user import User, UserRole
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.error_logging import log_and_raise
from .argon2_utils import hash_password, verify_password

logger = get_logger(__name__)


def parse_user_id(value: str | uuid.UUID) -> uuid.UUID:
    """Parse a token subject into a UUID, raising ValueError for malformed ids."""
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_user_by_id(session: AsyncSession, user_id: str | uuid.UUID) -> User | None:
    try:
        parsed = parse_user_id(user_id)
    except ValueError:
        logger.warning("Malformed user id", user_id=str(user_id))
        return None
    return await session.get(User, parsed)


async def create_user(session: AsyncSession, email: str, password: str, role: UserRole = UserRole.USER) -> User:
    """
    Create and commit a new account.

    Raises:
        ValidationError: If the e-mail address is already registered
    """
    user = User(email=email.strip().lower(), hashed_password=hash_password(password), role=role)
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        log_and_raise(
            ValidationError,
            f"Email already registered: {email}",
            details={"original_error": str(e.orig)},
            user_friendly="Email is already registered",
            field="email",
        )
    logger.info("User has registered", user_id=str(user.id), role=user.role.value)
    return user


async def authenticate_user(session: AsyncSession, email: str, password: str) -> User | None:
    """Return the account if the credentials match, otherwise None."""
    user = await get_user_by_email(session, email)
    if user is None:
        logger.info("Login failed - unknown email")
        return None
    if not verify_password(password, user.hashed_password):
        logger.info("Login failed - bad password", user_id=str(user.id))
        return None
    return user


class AccountDirectory:
    """Looks up account contact addresses by id for the chat handshake."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def get_contact_address(self, user_id: str) -> str:
        """
        Return the e-mail address of an account.

        Raises:
            ProfileLookupError: If the id is malformed, unknown, or the datastore fails
        """
        try:
            async with self._session_maker() as session:
                user = await get_user_by_id(session, user_id)
        except (SQLAlchemyError, OSError) as e:
            raise ProfileLookupError(
                f"Account lookup failed: {e}", user_id=user_id, details={"error_type": type(e).__name__}
            ) from e

        if user is None or not user.email:
            raise ProfileLookupError("Account not found", user_id=user_id)
        return user.email
