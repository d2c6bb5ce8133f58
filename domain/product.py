"""
Domain: Product (inventory item).

Invariants implemented here:
- stock is a non-negative integer; price is a non-negative Decimal.
- A product is purchasable only while listed (status=True) and holding enough stock.
- Field constraints (lengths, code pattern) are checked at construction.

Stock mutations are not performed here: the conditional decrement lives in the
database (see repositories/product_repository.py) so concurrent checkouts cannot
both pass the quantity check.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple
from uuid import UUID

from .errors import ValidationError
from .time import require_utc_timestamp

_CODE_PATTERN = re.compile(r"^[A-Z0-9-]+$")

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
CATEGORY_MIN_LENGTH = 2


def normalize_code(code: str) -> str:
    """Product codes are stored trimmed and uppercase."""
    return code.strip().upper()


@dataclass(frozen=True, slots=True)
class Product:
    """
    Immutable snapshot of a product row.

    A Product read at time T describes price/stock/status at T only; anything that
    must hold at mutation time is re-checked by the store.
    """

    product_id: UUID
    title: str
    code: str
    price: Decimal
    stock: int
    category: str
    status: bool = True
    description: Optional[str] = None
    thumbnails: Tuple[str, ...] = field(default_factory=tuple)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        title = self.title.strip()
        if not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
            raise ValidationError(
                f"title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters"
            )
        object.__setattr__(self, "title", title)

        code = normalize_code(self.code)
        if not _CODE_PATTERN.match(code):
            raise ValidationError("code may only contain uppercase letters, digits and hyphens")
        object.__setattr__(self, "code", code)

        if not isinstance(self.price, Decimal):
            raise ValidationError("price must be a Decimal")
        if not self.price.is_finite() or self.price < 0:
            raise ValidationError("price must be a finite number >= 0")

        # bool is an int subclass; reject it explicitly
        if isinstance(self.stock, bool) or not isinstance(self.stock, int):
            raise ValidationError("stock must be an integer")
        if self.stock < 0:
            raise ValidationError("stock must be >= 0")

        category = self.category.strip()
        if len(category) < CATEGORY_MIN_LENGTH:
            raise ValidationError(f"category must be at least {CATEGORY_MIN_LENGTH} characters")
        object.__setattr__(self, "category", category)

        if self.description is not None and len(self.description) > DESCRIPTION_MAX_LENGTH:
            raise ValidationError(f"description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")

        object.__setattr__(self, "thumbnails", tuple(self.thumbnails))
        if not all(isinstance(t, str) for t in self.thumbnails):
            raise ValidationError("thumbnails must be strings")

        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    @property
    def is_available(self) -> bool:
        """Listed and holding at least one unit."""
        return self.status and self.stock > 0

    def has_stock(self, quantity: int) -> bool:
        """True iff the product is listed and can cover `quantity` units."""
        return self.status and self.stock >= quantity


__all__ = ["Product", "normalize_code"]
