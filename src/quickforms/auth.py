from __future__ import annotations

import logging
from datetime import timedelta
from typing import Protocol

import jwt
from fastapi import Request, Response

from quickforms.config import SESSION_COOKIE, Settings
from quickforms.errors import Unauthorized
from quickforms.protocols import UserRepository
from quickforms.utils import now_utc

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class AuthProvider(Protocol):
    def issue_token(self, user_id: str) -> str: ...

    def require_user(self, request: Request) -> str: ...

    def set_session(self, response: Response, token: str) -> None: ...

    def clear_session(self, response: Response) -> None: ...


def token_from_request(request: Request) -> str | None:
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return token
    header = request.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


class SessionAuthProvider:
    """Signed, expiring session tokens carried in a cookie or bearer header."""

    def __init__(self, settings: Settings, users: UserRepository) -> None:
        self._secret = settings.secret_key
        self._ttl = timedelta(minutes=settings.session_ttl_minutes)
        self._secure = settings.cookie_secure
        self._users = users

    def issue_token(self, user_id: str) -> str:
        issued = now_utc()
        payload = {"sub": user_id, "iat": issued, "exp": issued + self._ttl}
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def resolve(self, token: str) -> str:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Session expired. Please sign in again.")
        except jwt.InvalidTokenError:
            logger.warning("Rejected invalid session token")
            raise Unauthorized("Invalid session token.")
        user_id = payload.get("sub")
        if not user_id or not self._users.get_user(str(user_id)):
            raise Unauthorized("Invalid session token.")
        return str(user_id)

    def require_user(self, request: Request) -> str:
        token = token_from_request(request)
        if not token:
            raise Unauthorized()
        return self.resolve(token)

    def set_session(self, response: Response, token: str) -> None:
        response.set_cookie(
            SESSION_COOKIE,
            token,
            max_age=int(self._ttl.total_seconds()),
            httponly=True,
            samesite="lax",
            secure=self._secure,
        )

    def clear_session(self, response: Response) -> None:
        response.delete_cookie(SESSION_COOKIE)


def get_auth_provider(settings: Settings, users: UserRepository) -> AuthProvider:
    return SessionAuthProvider(settings, users)


def current_user_id(request: Request) -> str:
    return request.app.state.auth_provider.require_user(request)
