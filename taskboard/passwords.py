"""Password hashing.

bcrypt generates a random salt per hash and stores it inside the returned
string, so a stored hash carries everything needed to verify it. The work
factor comes from settings (``TASKBOARD_BCRYPT_ROUNDS``).
"""

import bcrypt

from .config import settings

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:MAX_PASSWORD_BYTES]


def hash_password(password: str) -> str:
    """Hash a password with a fresh salt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check ``password`` against a stored hash in constant time.

    Malformed hashes verify as False instead of raising.
    """
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False
