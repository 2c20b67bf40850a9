"""
Argon2 password hashing utilities.

Passwords are hashed with Argon2id. Parameters can be tuned through the
ARGON2_TIME_COST, ARGON2_MEMORY_COST, ARGON2_PARALLELISM and
ARGON2_HASH_LENGTH environment variables.
"""

import os

from argon2 import PasswordHasher, Type, exceptions

from ..exceptions import AuthenticationError
from ..structured_logging.enhanced_logging_config import get_logger
from ..utils.error_logging import log_and_raise

logger = get_logger(__name__)

TIME_COST = int(os.getenv("ARGON2_TIME_COST", "3"))
MEMORY_COST = int(os.getenv("ARGON2_MEMORY_COST", "65536"))  # 64MB
PARALLELISM = int(os.getenv("ARGON2_PARALLELISM", "1"))
HASH_LENGTH = int(os.getenv("ARGON2_HASH_LENGTH", "32"))  # 256 bits

if TIME_COST < 1 or TIME_COST > 10:
    raise ValueError(f"ARGON2_TIME_COST must be between 1 and 10, got {TIME_COST}")
if MEMORY_COST < 1024 or MEMORY_COST > 1048576:
    raise ValueError(f"ARGON2_MEMORY_COST must be between 1024 and 1048576, got {MEMORY_COST}")
if PARALLELISM < 1 or PARALLELISM > 16:
    raise ValueError(f"ARGON2_PARALLELISM must be between 1 and 16, got {PARALLELISM}")
if HASH_LENGTH < 16 or HASH_LENGTH > 64:
    raise ValueError(f"ARGON2_HASH_LENGTH must be between 16 and 64, got {HASH_LENGTH}")

_default_hasher = PasswordHasher(
    type=Type.ID,
    time_cost=TIME_COST,
    memory_cost=MEMORY_COST,
    parallelism=PARALLELISM,
    hash_len=HASH_LENGTH,
)


def hash_password(password: str) -> str:
    """
    Hash a plaintext password using Argon2id.

    Args:
        password: Plaintext password

    Returns:
        Argon2id hash string in format: $argon2id$v=19$m=65536,t=3,p=1$...

    Raises:
        AuthenticationError: If password is not a string or hashing fails
    """
    if not isinstance(password, str):
        log_and_raise(AuthenticationError, "Password must be a string", user_friendly="Password processing failed")

    try:
        return _default_hasher.hash(password)
    except exceptions.HashingError as e:
        log_and_raise(
            AuthenticationError,
            f"Failed to hash password: {e}",
            details={"original_error": str(e), "error_type": type(e).__name__},
            user_friendly="Password processing failed",
        )


def verify_password(password: str, hashed: str) -> bool:
    """
    Verify a plaintext password against an Argon2 hash.

    Returns:
        True if password matches hash, False otherwise
    """
    if not isinstance(password, str) or not hashed:
        logger.warning("Password verification failed - missing password or hash")
        return False

    try:
        return bool(_default_hasher.verify(hashed, password))
    except exceptions.VerifyMismatchError:
        logger.debug("Password verification failed - mismatch")
        return False
    except (exceptions.VerificationError, exceptions.InvalidHashError) as e:
        logger.warning("Password verification failed - invalid hash", error=str(e))
        return False


def needs_rehash(hashed: str) -> bool:
    """Check if a hash was produced with parameters other than the current ones."""
    if not hashed.startswith("$argon2"):
        return True
    try:
        return bool(_default_hasher.check_needs_rehash(hashed))
    except exceptions.InvalidHashError as e:
        logger.error("Error checking password rehash needs", error=str(e), error_type=type(e).__name__)
        return True
