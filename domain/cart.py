"""
Domain: Cart and cart line items.

Invariants implemented here:
- A cart holds at most one line per product; re-adding a product merges quantities.
- Every line quantity is >= 1.
- Adding or updating a line requires the product to be listed and to hold enough
  stock for the resulting quantity (existing + new when merging).
- Lines keep insertion order; merging keeps the original position.

Transitions are pure: every operation returns a new Cart and leaves the
original untouched. Persistence lives in repositories/cart_repository.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Tuple
from uuid import UUID

from .errors import NotFoundError, StockConflictError, ValidationError
from .product import Product
from .time import require_utc_timestamp


def require_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity < 1:
        raise ValidationError("quantity must be greater than 0")


def require_purchasable(product: Product, quantity: int) -> None:
    """Raise unless `product` is listed and can cover `quantity` units."""

    if not product.status:
        raise ValidationError(f"Product {product.title} is not available")
    if product.stock < quantity:
        raise StockConflictError(product.product_id, requested=quantity, available=product.stock)


@dataclass(frozen=True, slots=True)
class CartLine:
    """A (product, quantity) pair. `product` is populated when the cart is read with products."""

    product_id: UUID
    quantity: int
    product: Optional[Product] = None

    def __post_init__(self) -> None:
        require_quantity(self.quantity)

    @property
    def subtotal(self) -> Decimal:
        if self.product is None:
            return Decimal("0")
        return self.product.price * self.quantity


@dataclass(frozen=True, slots=True)
class Cart:
    """Immutable view of a user's pending line items."""

    cart_id: UUID
    lines: Tuple[CartLine, ...] = field(default_factory=tuple)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))
        seen = set()
        for line in self.lines:
            if line.product_id in seen:
                raise ValidationError(f"Product {line.product_id} appears more than once in the cart")
            seen.add(line.product_id)
        if self.created_at is not None:
            require_utc_timestamp("created_at", self.created_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def total_items(self) -> int:
        """Sum of quantities across all lines."""
        return sum(line.quantity for line in self.lines)

    @property
    def total(self) -> Decimal:
        """Sum of price x quantity over lines whose product is loaded."""
        return sum((line.subtotal for line in self.lines), Decimal("0"))

    def find_line(self, product_id: UUID) -> Optional[CartLine]:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def with_added(self, product: Product, quantity: int = 1) -> "Cart":
        """
        Return a new Cart with `quantity` units of `product` added.

        Validates the combined quantity (existing + new) against current stock.
        """

        require_quantity(quantity)
        existing = self.find_line(product.product_id)
        combined = quantity if existing is None else existing.quantity + quantity
        require_purchasable(product, combined)

        if existing is None:
            new_lines = self.lines + (CartLine(product.product_id, quantity, product),)
        else:
            new_lines = tuple(
                CartLine(line.product_id, combined, product) if line.product_id == product.product_id else line
                for line in self.lines
            )
        return replace(self, lines=new_lines)

    def without(self, product_id: UUID) -> "Cart":
        if self.find_line(product_id) is None:
            raise NotFoundError(f"Product {product_id} not found in cart")
        return replace(self, lines=tuple(line for line in self.lines if line.product_id != product_id))

    def with_quantity(self, product: Product, quantity: int) -> "Cart":
        """Return a new Cart with the line for `product` set to `quantity`."""

        require_quantity(quantity)
        if self.find_line(product.product_id) is None:
            raise NotFoundError(f"Product {product.product_id} not found in cart")
        require_purchasable(product, quantity)
        return replace(
            self,
            lines=tuple(
                CartLine(line.product_id, quantity, product) if line.product_id == product.product_id else line
                for line in self.lines
            ),
        )

    def replaced(self, items: Sequence[Tuple[Product, int]]) -> "Cart":
        """
        Return a new Cart holding exactly `items`.

        Every item is validated before anything is replaced; a single failure
        rejects the whole set.
        """

        lines = []
        for product, quantity in items:
            require_quantity(quantity)
            require_purchasable(product, quantity)
            lines.append(CartLine(product.product_id, quantity, product))
        return replace(self, lines=tuple(lines))

    def cleared(self) -> "Cart":
        return replace(self, lines=())


def require_unique_products(items: Iterable[Tuple[UUID, int]]) -> list[Tuple[UUID, int]]:
    """Reject bulk payloads listing the same product twice."""

    seen = set()
    result = []
    for product_id, quantity in items:
        if product_id in seen:
            raise ValidationError(f"Product {product_id} appears more than once")
        seen.add(product_id)
        result.append((product_id, quantity))
    return result


__all__ = ["Cart", "CartLine", "require_quantity", "require_purchasable", "require_unique_products"]
