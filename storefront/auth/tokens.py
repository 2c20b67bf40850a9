"""
Access token issuance and verification.

Tokens are HS256 JWTs carrying the account id as `sub`, the account role as
`role`, and an `exp` expiry. The same shared secret signs tokens for the REST
API and verifies them during the chat handshake.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError as SettingsValidationError

from ..error_types import ErrorMessages
from ..exceptions import ConfigurationError, InvalidCredentialError, MissingCredentialError
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.error_logging import log_and_raise

logger = get_logger(__name__)


def _security_settings() -> Any:
    from ..config import get_config

    try:
        return get_config().security
    except SettingsValidationError as e:
        log_and_raise(
            ConfigurationError,
            "Token signing settings are missing or invalid",
            details={"errors": [".".join(str(p) for p in err["loc"]) for err in e.errors()]},
            user_friendly=ErrorMessages.INTERNAL_ERROR,
            config_key="STOREFRONT_JWT_SECRET",
        )


def create_access_token(
    subject: str,
    role: str,
    expires_delta: timedelta | None = None,
    secret_key: str | None = None,
    algorithm: str | None = None,
) -> str:
    """
    Create a signed access token for an account.

    Args:
        subject: Account id placed in the `sub` claim
        role: Account role placed in the `role` claim
        expires_delta: Token lifetime (defaults to the configured lifetime)
        secret_key: Signing secret (defaults to the configured secret)
        algorithm: Signing algorithm (defaults to the configured algorithm)
    """
    settings = _security_settings() if secret_key is None or algorithm is None or expires_delta is None else None
    secret_key = secret_key or settings.jwt_secret
    algorithm = algorithm or settings.jwt_algorithm
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    expire = datetime.now(UTC) + expires_delta
    token = jwt.encode({"sub": subject, "role": role, "exp": expire}, secret_key, algorithm=algorithm)
    logger.debug("Access token created", user_id=subject, role=role, expires_at=expire.isoformat())
    return token


def decode_access_token(
    token: str | None, secret_key: str | None = None, algorithm: str | None = None
) -> dict[str, Any]:
    """
    Verify a token's signature and expiry and return its claims.

    Raises:
        MissingCredentialError: If no token was supplied
        InvalidCredentialError: If the signature, expiry or `sub` claim is invalid
    """
    if not token:
        log_and_raise(
            MissingCredentialError,
            ErrorMessages.TOKEN_MISSING,
            user_friendly=ErrorMessages.AUTHENTICATION_REQUIRED,
            logger_name=__name__,
        )

    if secret_key is None or algorithm is None:
        settings = _security_settings()
        secret_key = secret_key or settings.jwt_secret
        algorithm = algorithm or settings.jwt_algorithm

    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except ExpiredSignatureError as e:
        logger.warning("JWT expired", error=str(e))
        log_and_raise(
            InvalidCredentialError,
            ErrorMessages.TOKEN_INVALID,
            details={"cause": "expired"},
            user_friendly="Your session has expired. Please log in again.",
        )
    except JWTError as e:
        logger.warning("JWT decode failed", error=str(e), error_type=type(e).__name__)
        log_and_raise(
            InvalidCredentialError,
            ErrorMessages.TOKEN_INVALID,
            details={"cause": type(e).__name__},
            user_friendly=ErrorMessages.AUTHENTICATION_REQUIRED,
        )

    if not payload.get("sub"):
        log_and_raise(
            InvalidCredentialError,
            ErrorMessages.TOKEN_INVALID,
            details={"cause": "missing_sub"},
            user_friendly=ErrorMessages.AUTHENTICATION_REQUIRED,
        )
    return payload
