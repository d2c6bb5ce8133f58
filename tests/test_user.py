"""
Tests for `domain/user.py` and `repositories/user_repository.py`.

Covers rules:
- A user's email must be one a ticket will accept as its purchaser.
- create_user rejects a malformed email before writing the user or the cart.
"""

from __future__ import annotations

from uuid import UUID

import pytest

from domain.errors import ValidationError
from domain.user import User, UserRole
from repositories.user_repository import create_user, get_user_by_email

USER_ID = UUID("00000000-0000-0000-0000-000000000401")
CART_ID = UUID("00000000-0000-0000-0000-000000000402")


def test_user_requires_deliverable_email() -> None:
    user = User(user_id=USER_ID, email="ana@example.com", first_name="Ana", cart_id=CART_ID)
    assert user.role is UserRole.USER

    for bad in ("buyer@localhost", "no-at-sign.com", "two words@example.com", ""):
        with pytest.raises(ValidationError):
            User(user_id=USER_ID, email=bad, first_name="Ana", cart_id=CART_ID)


def test_create_user_normalizes_email(fake_db) -> None:
    user = create_user("  Ana@Example.COM ", "Ana")

    assert user.email == "ana@example.com"
    assert get_user_by_email("ANA@example.com").user_id == user.user_id
    assert len(fake_db.rows("carts")) == 1


def test_create_user_with_malformed_email_writes_nothing(fake_db) -> None:
    with pytest.raises(ValidationError):
        create_user("buyer@localhost", "Ana")

    assert fake_db.mutation_count() == 0
    assert fake_db.rows("users") == []
    assert fake_db.rows("carts") == []
