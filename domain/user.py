"""
Domain: User (purchaser) accounts.

Only the fields the checkout pipeline needs are modelled: the email that gets
snapshotted into tickets, the display name used in confirmations, the owned
cart and the role used for authorization checks in the API layer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from .errors import ValidationError
from .time import require_utc_timestamp

# Shared by User.email and Ticket.purchaser
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")


def require_email(name: str, value: str) -> None:
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value):
        raise ValidationError(f"{name} must be a valid email address")


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True, slots=True)
class User:
    """
    User account. Each user owns exactly one cart (created alongside the user).
    """

    user_id: UUID
    email: str
    first_name: str
    cart_id: UUID
    last_name: Optional[str] = None
    role: UserRole = UserRole.USER

    # Timestamps
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Validate the email and that timestamps are UTC-aware."""
        require_email("email", self.email)
        object.__setattr__(self, "role", UserRole(self.role))
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    @property
    def display_name(self) -> str:
        return self.first_name

    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

    def owns_cart(self, cart_id: UUID) -> bool:
        return self.cart_id == cart_id
