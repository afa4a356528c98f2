"""Identity resolution: bearer tokens to owner ids, plus password hashing."""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from fastapi import Header

from .config import Settings, get_settings
from .errors import AuthError

logger = logging.getLogger(__name__)

_PASSWORD_HASHER = PasswordHasher()


def hash_password(password: str) -> str:
    return _PASSWORD_HASHER.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    try:
        return _PASSWORD_HASHER.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def gravatar_url(email: str, *, size: int = 200) -> str:
    digest = hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()  # noqa: S324
    query = urlencode({"s": str(size), "r": "pg", "d": "mm"})
    return f"https://www.gravatar.com/avatar/{digest}?{query}"


def create_access_token(user_id: str, *, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    now = int(time.time())
    claims: Dict[str, Any] = {
        "sub": user_id,
        "iat": now,
        "exp": now + settings.token_expire_minutes * 60,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def resolve_owner(token: str, *, settings: Optional[Settings] = None) -> str:
    """Return the owner id carried by ``token`` or raise AuthError."""
    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("Token has expired") from None
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise AuthError("Token is not valid") from None
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise AuthError("Token is not valid")
    return subject


def _extract_token(authorization: Optional[str], legacy_token: Optional[str]) -> str:
    if authorization:
        scheme, _, credential = authorization.partition(" ")
        if scheme.lower() == "bearer" and credential.strip():
            return credential.strip()
    if legacy_token and legacy_token.strip():
        return legacy_token.strip()
    raise AuthError("No token, authorization denied")


def get_current_owner(
    authorization: Optional[str] = Header(default=None),
    x_auth_token: Optional[str] = Header(default=None),
) -> str:
    """FastAPI dependency resolving the caller to an owner id."""
    return resolve_owner(_extract_token(authorization, x_auth_token))


__all__ = [
    "create_access_token",
    "get_current_owner",
    "gravatar_url",
    "hash_password",
    "resolve_owner",
    "verify_password",
]
