"""
HomelyEats - Security Utilities
=================================
JWT decoding for tokens issued by the hosted identity provider.

The provider signs access tokens with a shared secret; `sub` carries the
user id. create_token() mirrors the provider's format for scripts and tests.
"""

import logging
from datetime import timedelta
from typing import Optional

from jose import jwt, JWTError

from config.settings import (
    AUTH_JWT_SECRET, AUTH_JWT_ALGORITHM, AUTH_JWT_AUDIENCE,
    ACCESS_TOKEN_EXPIRE_MINUTES,
)
from common.helpers import now_utc

logger = logging.getLogger("homelyeats.security")


def create_token(data: dict) -> str:
    """Create a JWT in the identity provider's format."""
    to_encode = data.copy()
    to_encode["exp"] = now_utc() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    if AUTH_JWT_AUDIENCE and "aud" not in to_encode:
        to_encode["aud"] = AUTH_JWT_AUDIENCE
    return jwt.encode(to_encode, AUTH_JWT_SECRET, algorithm=AUTH_JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode a JWT token. Returns payload or None."""
    options = {} if AUTH_JWT_AUDIENCE else {"verify_aud": False}
    try:
        return jwt.decode(
            token,
            AUTH_JWT_SECRET,
            algorithms=[AUTH_JWT_ALGORITHM],
            audience=AUTH_JWT_AUDIENCE or None,
            options=options,
        )
    except JWTError as e:
        logger.info(f"Rejected access token: {e}")
        return None


def get_cookie_kwargs(max_age: int) -> dict:
    """Standard cookie settings."""
    from config.settings import COOKIE_SECURE, COOKIE_SAMESITE
    return dict(
        httponly=True,
        secure=COOKIE_SECURE,
        samesite=COOKIE_SAMESITE,
        max_age=max_age,
    )
