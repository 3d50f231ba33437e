"""Bearer token issue and verification.

Tokens are HS256 JWTs carrying the user's id and username plus ``iat`` and
``exp`` claims. They are stateless: nothing is stored server side and a
token stays valid until it expires.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from .config import settings
from .models import User


class TokenError(Exception):
    """Raised when a token cannot be verified."""


class InvalidToken(TokenError):
    """Signature mismatch or otherwise unacceptable claims."""


class ExpiredToken(TokenError):
    """The ``exp`` claim is in the past."""


class MalformedToken(TokenError):
    """Not a structurally valid token, or the payload lacks an identity."""


def issue_token(user: User, now: Optional[datetime] = None) -> str:
    """Sign a token for ``user``. The password hash is never included."""
    issued = now or datetime.now(timezone.utc)
    payload = {
        "id": user.id,
        "username": user.username,
        "iat": issued,
        "exp": issued + timedelta(hours=settings.token_expire_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a token.

    Returns the payload dict on success, raises a TokenError subclass
    otherwise.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise ExpiredToken("Token has expired")
    except jwt.DecodeError as e:
        # InvalidSignatureError is a DecodeError subclass, keep it apart
        if isinstance(e, jwt.InvalidSignatureError):
            raise InvalidToken("Token signature is invalid")
        raise MalformedToken(f"Malformed token: {e}")
    except jwt.InvalidTokenError as e:
        raise InvalidToken(f"Invalid token: {e}")

    user_id = payload.get("id")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise MalformedToken("Token payload has no user id")
    return payload
