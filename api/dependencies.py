"""
Request-scoped dependencies.

Session handling lives in front of this service: the gateway authenticates the
caller and forwards the user's ID in the `X-User-Id` header.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException

from domain.errors import CheckoutError, NotFoundError, PersistenceError, ValidationError
from domain.user import User
from repositories.user_repository import get_user_by_id


def get_current_user(x_user_id: Optional[str] = Header(None)) -> User:
    """Resolve the authenticated principal or fail with 401."""

    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid user id")

    user = get_user_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin():
        raise HTTPException(status_code=403, detail="Admin role required")
    return user


def require_cart_access(cart_id: UUID, user: User) -> None:
    """Owners and admins may modify a cart."""

    if not user.owns_cart(cart_id) and not user.is_admin():
        raise HTTPException(status_code=403, detail="You are not allowed to modify this cart")


def status_for(error: CheckoutError) -> int:
    """Map domain errors onto HTTP status codes."""

    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    return 500


def http_error(error: CheckoutError) -> HTTPException:
    if isinstance(error, PersistenceError):
        return HTTPException(status_code=500, detail=f"Storage failure: {error}")
    return HTTPException(status_code=status_for(error), detail=str(error))
