# storefront/security.py
"""Credentials, tokens and the request caller."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

import bcrypt
import jwt
from fastapi import Depends, Header

from .errors import AuthenticationError, AuthorizationError
from .services.firebase import now_utc
from .settings import settings


@dataclass(frozen=True)
class UserCaller:
    id: str


@dataclass(frozen=True)
class AdminCaller:
    id: str
    role: str = "admin"


Caller = Union[UserCaller, AdminCaller]


# --- Passwords ----------------------------------------------------------------
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not password or not hashed:
        return False
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


# --- Tokens -------------------------------------------------------------------
def create_token(caller: Caller) -> str:
    if isinstance(caller, AdminCaller):
        claims = {"admin": {"id": caller.id, "role": caller.role}}
    else:
        claims = {"user": {"id": caller.id, "isAdmin": False}}
    issued = now_utc()
    claims["iat"] = issued
    claims["exp"] = issued + timedelta(minutes=settings.jwt_expires_minutes)
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Caller:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        raise AuthenticationError("Token is not valid")

    user = payload.get("user")
    if isinstance(user, dict) and user.get("id"):
        return UserCaller(id=str(user["id"]))
    admin = payload.get("admin")
    if isinstance(admin, dict) and admin.get("id"):
        return AdminCaller(id=str(admin["id"]), role=admin.get("role") or "admin")
    raise AuthenticationError("Invalid token structure")


# --- FastAPI dependencies -----------------------------------------------------
def get_caller(
    authorization: Optional[str] = Header(None),
    x_auth_token: Optional[str] = Header(None),
) -> Caller:
    """Resolve the caller from a bearer token or the legacy x-auth-token header."""
    token = None
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            token = value.strip()
    if token is None and x_auth_token:
        token = x_auth_token.strip()
    if not token:
        raise AuthenticationError("No token, authorization denied")
    return decode_token(token)


def require_user(caller: Caller = Depends(get_caller)) -> UserCaller:
    if not isinstance(caller, UserCaller):
        raise AuthorizationError("Access denied. Customer account required.")
    return caller


def require_admin(caller: Caller = Depends(get_caller)) -> AdminCaller:
    if not isinstance(caller, AdminCaller):
        raise AuthorizationError("Access denied. Admin only.")
    return caller
