# bakery/auth.py
"""
Admin credentials.

Staff endpoints only need to know whether a request carries a valid admin
credential. Each scheme is an ``AdminAuth``; the app tries them in order.
"""
from __future__ import annotations

import hmac
from datetime import datetime, timedelta, timezone

from fastapi import Request
from jose import JWTError, jwt

from .config import Settings
from .errors import Unauthorized

ADMIN_SUBJECT = "admin"


def _same(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


class AdminAuth:
    def is_admin(self, request: Request) -> bool:
        raise NotImplementedError


class SharedSecretAuth(AdminAuth):
    """Static secret in x-admin-password (or x-admin-key) header."""

    def __init__(self, password: str = "", key: str = "") -> None:
        self.password = password
        self.key = key

    def is_admin(self, request: Request) -> bool:
        got_pass = request.headers.get("x-admin-password", "")
        got_key = request.headers.get("x-admin-key", "")
        if self.password and got_pass and _same(got_pass, self.password):
            return True
        if self.key and got_key and _same(got_key, self.key):
            return True
        return False


class SessionTokenAuth(AdminAuth):
    """Signed admin session issued by POST /admin/login, sent as a Bearer token."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 720) -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def create_token(self, now: datetime | None = None) -> str:
        now = now or datetime.now(timezone.utc)
        exp = now + timedelta(minutes=self.expire_minutes)
        payload = {"sub": ADMIN_SUBJECT, "exp": exp}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_token(self, token: str) -> bool:
        try:
            data = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError:
            return False
        return data.get("sub") == ADMIN_SUBJECT

    def is_admin(self, request: Request) -> bool:
        authorization = request.headers.get("authorization", "")
        if not authorization.lower().startswith("bearer "):
            return False
        return self.decode_token(authorization.split(" ", 1)[1].strip())


def default_admin_auth(settings: Settings) -> list[AdminAuth]:
    return [
        SharedSecretAuth(password=settings.admin_password, key=settings.admin_key),
        SessionTokenAuth(settings.jwt_secret, settings.jwt_alg, settings.jwt_expire_minutes),
    ]


def check_admin_password(settings: Settings, password: str) -> bool:
    return bool(settings.admin_password) and _same(password or "", settings.admin_password)


def require_admin(request: Request) -> None:
    schemes: list[AdminAuth] = request.app.state.admin_auth
    if not any(scheme.is_admin(request) for scheme in schemes):
        raise Unauthorized()
