"""
User repository.

Lookup of purchaser accounts for the checkout pipeline and the API's
authorization checks. Account management itself (sign-up, passwords, sessions)
belongs to another service.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional
from uuid import UUID, uuid4

from domain.time import utc_now
from domain.user import User, UserRole, require_email
from repositories.cart_repository import create_cart
from repositories.client import get_supabase
from repositories.rows import parse_optional_datetime, run_query

_USERS_TABLE: str = "users"


def _row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        user_id=UUID(str(row["user_id"])),
        email=str(row["email"]),
        first_name=str(row["first_name"]),
        last_name=row.get("last_name"),
        cart_id=UUID(str(row["cart_id"])),
        role=UserRole(str(row.get("role") or UserRole.USER.value)),
        created_at=parse_optional_datetime(row, "created_at_utc"),
        updated_at=parse_optional_datetime(row, "updated_at_utc"),
    )


def get_user_by_id(user_id: UUID) -> Optional[User]:
    """
    Get a user by their ID.

    Returns:
        User domain model or None if not found
    """

    rows = run_query(
        get_supabase().table(_USERS_TABLE).select("*").eq("user_id", str(user_id)).limit(1),
        "fetch user",
    )
    if not rows:
        return None
    return _row_to_user(rows[0])


def get_user_by_email(email: str) -> Optional[User]:
    rows = run_query(
        get_supabase().table(_USERS_TABLE).select("*").eq("email", email.strip().lower()).limit(1),
        "fetch user",
    )
    if not rows:
        return None
    return _row_to_user(rows[0])


def create_user(
    email: str,
    first_name: str,
    last_name: Optional[str] = None,
    role: UserRole = UserRole.USER,
) -> User:
    """
    Create a user together with the cart they own (1:1).

    The email is validated before anything is written.

    Raises:
        ValidationError: malformed email

    Example:
        buyer = create_user("buyer@example.com", "Ana")
        add_line_item(buyer.cart_id, product.product_id, 2)
    """

    email = email.strip().lower()
    require_email("email", email)

    cart = create_cart()
    user_id = uuid4()
    now = utc_now()

    payload = {
        "user_id": str(user_id),
        "email": email,
        "first_name": first_name,
        "last_name": last_name,
        "cart_id": str(cart.cart_id),
        "role": UserRole(role).value,
        "created_at_utc": now.isoformat(),
        "updated_at_utc": now.isoformat(),
    }
    run_query(get_supabase().table(_USERS_TABLE).insert(payload), "create user")

    return User(
        user_id=user_id,
        email=payload["email"],
        first_name=first_name,
        last_name=last_name,
        cart_id=cart.cart_id,
        role=role,
        created_at=now,
        updated_at=now,
    )


__all__ = ["get_user_by_id", "get_user_by_email", "create_user"]
