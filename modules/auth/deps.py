"""
Auth Module - Dependencies
===========================
FastAPI dependencies for user authentication and authorization.
These are injected into route handlers via Depends().

The identity provider is trusted as-is: a valid token for an unknown user
id creates the profile row on first sight.
"""

from typing import Optional

from fastapi import Request, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import AuthenticationError, UnauthorizedError
from common.security import decode_token
from modules.user.models import Profile


def _extract_token(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return request.cookies.get("auth_token")


def _create_profile(db: Session, user_id: str, full_name: Optional[str]) -> Profile:
    try:
        user = Profile(id=user_id, full_name=full_name)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    except IntegrityError:
        db.rollback()
        # Another request created this profile first
        user = db.query(Profile).filter(Profile.id == user_id).first()
        if user:
            return user
        raise AuthenticationError()


def get_current_active_user(request: Request, db: Session = Depends(get_db)) -> Optional[Profile]:
    """
    Identify the current user from the bearer token or auth_token cookie.
    Returns Profile or None.
    """
    token = _extract_token(request)
    if not token:
        return None

    payload = decode_token(token)
    if not payload:
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    user = db.query(Profile).filter(Profile.id == str(user_id)).first()
    if not user:
        user = _create_profile(db, str(user_id), payload.get("name"))

    if not user.is_active:
        return None
    return user


def require_login(user=Depends(get_current_active_user)) -> Profile:
    """Require any authenticated active user. Raises 401 if not logged in."""
    if not user:
        raise AuthenticationError()
    return user


def require_admin(user=Depends(get_current_active_user)) -> Profile:
    """Only allow admin users."""
    if not user:
        raise AuthenticationError()
    if not user.is_admin:
        raise UnauthorizedError("Admin access required")
    return user
