"""
Identity resolution for the real-time chat handshake.

A credential either resolves to a UserIdentity or the handshake fails with
an AuthError. A valid credential whose account cannot be loaded still
resolves, with no display name; the client may announce one later.
"""

from dataclasses import dataclass
from typing import Protocol

from ..exceptions import ProfileLookupError
from ..models.user import UserRole
from ..structured_logging.enhanced_logging_config import get_logger
from .tokens import decode_access_token

logger = get_logger(__name__)

BEARER_SCHEME = "bearer"


class AccountLookup(Protocol):
    async def get_contact_address(self, user_id: str) -> str: ...


@dataclass(frozen=True)
class UserIdentity:
    """The authenticated identity bound to one real-time connection."""

    id: str
    role: UserRole
    display_name: str | None = None


def display_name_from_address(address: str) -> str:
    """Everything before the first '@' of a contact address."""
    return address.split("@", 1)[0]


def extract_token(auth_token: str | None, authorization_header: str | None) -> str | None:
    """
    Pick the credential from the handshake auth payload, falling back to a bearer header.

    Args:
        auth_token: Token from the handshake auth payload (the `token` query parameter)
        authorization_header: Raw Authorization header value
    """
    if auth_token and auth_token.strip():
        return auth_token.strip()
    if authorization_header:
        header = authorization_header.strip()
        scheme, _, credentials = header.partition(" ")
        if scheme.lower() == BEARER_SCHEME:
            header = credentials.strip()
        return header or None
    return None


class IdentityResolver:
    """Turns a signed token into a UserIdentity."""

    def __init__(
        self,
        accounts: AccountLookup,
        secret_key: str | None = None,
        algorithm: str | None = None,
    ) -> None:
        self._accounts = accounts
        self._secret_key = secret_key
        self._algorithm = algorithm

    async def resolve(self, token: str | None) -> UserIdentity:
        """
        Resolve a credential to an identity.

        Raises:
            MissingCredentialError: If no token was supplied
            InvalidCredentialError: If the token fails verification
        """
        claims = decode_access_token(token, secret_key=self._secret_key, algorithm=self._algorithm)
        user_id = str(claims["sub"])
        role = UserRole.ADMIN if claims.get("role") == UserRole.ADMIN.value else UserRole.USER

        display_name: str | None = None
        try:
            address = await self._accounts.get_contact_address(user_id)
            display_name = display_name_from_address(address) or None
        except ProfileLookupError as e:
            # Non-fatal: the client may still announce a name with `user joined`
            logger.warning("Profile lookup failed during handshake", user_id=user_id, error=e.message)

        logger.info("Identity resolved", user_id=user_id, role=role.value, has_display_name=display_name is not None)
        return UserIdentity(id=user_id, role=role, display_name=display_name)
