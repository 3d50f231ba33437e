"""Request authentication.

Every protected route depends on ``get_current_user``, which asks each
scheme in turn to identify the caller:

1. session cookie (already trusted, a dictionary lookup),
2. ``Authorization: Bearer <token>`` (signature check plus a user lookup),
3. ``Authorization: Basic <base64>`` (a full password hash check).

A scheme that fails for any reason simply returns None so the next one can
try; only when all of them fail is the request rejected, always with the
same generic 401 so callers cannot tell which scheme was wrong.
"""

from __future__ import annotations

import base64
import binascii
from typing import Optional, Sequence

import structlog
from fastapi import Depends, Request

from .config import settings
from .errors import Unauthorized
from .models import User
from .passwords import verify_password
from .sessions import SessionStore, session_store
from .storage import Storage, storage
from .tokens import TokenError, verify_token
from .utils import split_credentials

logger = structlog.get_logger()


def get_storage() -> Storage:
    return storage


def get_sessions() -> SessionStore:
    return session_store


def _authorization(request: Request, scheme: str) -> Optional[str]:
    """Return the credentials part of the Authorization header for ``scheme``."""
    header = request.headers.get("authorization")
    if not header:
        return None
    name, _, credentials = header.partition(" ")
    if name.lower() != scheme.lower():
        return None
    return credentials.strip() or None


class SessionScheme:
    name = "session"

    def authenticate(self, request: Request, storage: Storage, sessions: SessionStore) -> Optional[User]:
        sid = request.cookies.get(settings.session_cookie_name)
        user_id = sessions.get(sid)
        if user_id is None:
            return None
        return storage.get_user(user_id)


class BearerScheme:
    name = "bearer"

    def authenticate(self, request: Request, storage: Storage, sessions: SessionStore) -> Optional[User]:
        token = _authorization(request, "Bearer")
        if token is None:
            return None
        try:
            payload = verify_token(token)
        except TokenError as e:
            logger.debug("auth.scheme_failed", scheme=self.name, reason=type(e).__name__)
            return None
        return storage.get_user(payload["id"])


class BasicScheme:
    name = "basic"

    def authenticate(self, request: Request, storage: Storage, sessions: SessionStore) -> Optional[User]:
        encoded = _authorization(request, "Basic")
        if encoded is None:
            return None
        try:
            decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
            username, password = split_credentials(decoded)
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            logger.debug("auth.scheme_failed", scheme=self.name, reason=type(e).__name__)
            return None
        user = storage.get_user_by_username(username)
        if user is None or not verify_password(password, user.password):
            logger.debug("auth.scheme_failed", scheme=self.name, reason="bad_credentials")
            return None
        return user


class Authenticator:
    """Try each scheme in order; the first one to produce a user wins."""

    def __init__(self, schemes: Sequence = (SessionScheme(), BearerScheme(), BasicScheme())) -> None:
        self.schemes = tuple(schemes)

    def authenticate(self, request: Request, storage: Storage, sessions: SessionStore) -> User:
        for scheme in self.schemes:
            user = scheme.authenticate(request, storage, sessions)
            if user is not None:
                request.state.user = user
                request.state.auth_scheme = scheme.name
                return user
        logger.info("auth.rejected", path=request.url.path)
        raise Unauthorized("Unauthorized", headers={"WWW-Authenticate": "Bearer, Basic"})


authenticator = Authenticator()


def get_current_user(
    request: Request,
    storage: Storage = Depends(get_storage),
    sessions: SessionStore = Depends(get_sessions),
) -> User:
    return authenticator.authenticate(request, storage, sessions)
