"""
Cart Module - Dependencies
============================
Builds the request's CartStore on the right backing store: the user's
`cart_items` rows when logged in, the `cart` cookie otherwise.
"""

from typing import Optional

from fastapi import Request, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from config.database import get_db
from config.settings import CART_COOKIE, CART_COOKIE_MAX_AGE
from common.security import get_cookie_kwargs
from modules.auth.deps import get_current_active_user
from modules.cart.service import CartStore, UserCartBackend, AnonymousCartBackend
from modules.user.models import Profile


def get_cart_store(
    request: Request,
    db: Session = Depends(get_db),
    user: Optional[Profile] = Depends(get_current_active_user),
) -> CartStore:
    if user:
        return CartStore(UserCartBackend(db, user.id))
    return CartStore(AnonymousCartBackend.from_cookie(db, request.cookies.get(CART_COOKIE)))


def persist_cart_cookie(response: Response, store: CartStore):
    """Write an anonymous cart back to its cookie if it changed."""
    backend = store.backend
    if isinstance(backend, AnonymousCartBackend) and backend.dirty:
        response.set_cookie(CART_COOKIE, backend.cookie_value(), **get_cookie_kwargs(CART_COOKIE_MAX_AGE))
