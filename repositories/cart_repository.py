"""
Cart repository (Cart Store).

Carts live in two tables: `carts` (one row per cart) and `cart_items` (one row
per line, unique on (cart_id, product_id), ordered by the `position` identity
column so lines come back in insertion order).

Business rules (merge on re-add, stock checks, bulk validation) are enforced by
the pure transitions in domain/cart.py; this module loads the current state,
asks the domain for the next state and persists the difference.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from domain.cart import Cart, CartLine, require_quantity, require_unique_products
from domain.errors import NotFoundError, ValidationError
from domain.product import Product
from domain.time import utc_now
from repositories.client import get_supabase
from repositories.product_repository import get_product_by_id, get_products_by_ids
from repositories.rows import parse_optional_datetime, run_query, run_rpc

logger = logging.getLogger(__name__)

# Supabase table names for carts.
# Keep these aligned with sql/schema.sql.
_CARTS_TABLE: str = "carts"
_CART_ITEMS_TABLE: str = "cart_items"


def _touch(cart_id: UUID) -> None:
    run_query(
        get_supabase()
        .table(_CARTS_TABLE)
        .update({"updated_at_utc": utc_now().isoformat()})
        .eq("cart_id", str(cart_id)),
        "update cart timestamp",
    )


def _require_product(product_id: UUID) -> Product:
    product = get_product_by_id(product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def create_cart() -> Cart:
    """Insert an empty cart."""

    cart_id = uuid4()
    now = utc_now()
    run_query(
        get_supabase()
        .table(_CARTS_TABLE)
        .insert(
            {
                "cart_id": str(cart_id),
                "created_at_utc": now.isoformat(),
                "updated_at_utc": now.isoformat(),
            }
        ),
        "create cart",
    )
    return Cart(cart_id=cart_id, lines=(), created_at=now, updated_at=now)


def get_cart(cart_id: UUID, *, with_products: bool = True) -> Optional[Cart]:
    """
    Retrieve a cart and its lines in insertion order.

    With `with_products`, every line's current product state (price, stock,
    status) is loaded in a single batch read, so the whole cart reflects one
    point in time as closely as the store allows. Lines whose product no
    longer exists keep `product=None`.

    Returns:
        Cart or None if the cart does not exist
    """

    cart_rows = run_query(
        get_supabase().table(_CARTS_TABLE).select("*").eq("cart_id", str(cart_id)).limit(1),
        "get cart",
    )
    if not cart_rows:
        return None
    cart_row = cart_rows[0]

    item_rows = run_query(
        get_supabase()
        .table(_CART_ITEMS_TABLE)
        .select("*")
        .eq("cart_id", str(cart_id))
        .order("position"),
        "list cart items",
    )

    products = {}
    if with_products:
        products = get_products_by_ids(UUID(str(row["product_id"])) for row in item_rows)

    lines = []
    for row in item_rows:
        product_id = UUID(str(row["product_id"]))
        lines.append(CartLine(product_id, int(row["quantity"]), products.get(product_id)))

    return Cart(
        cart_id=UUID(str(cart_row["cart_id"])),
        lines=tuple(lines),
        created_at=parse_optional_datetime(cart_row, "created_at_utc"),
        updated_at=parse_optional_datetime(cart_row, "updated_at_utc"),
    )


def _require_cart(cart_id: UUID) -> Cart:
    cart = get_cart(cart_id, with_products=False)
    if cart is None:
        raise NotFoundError(f"Cart {cart_id} not found")
    return cart


def add_line_item(cart_id: UUID, product_id: UUID, quantity: int = 1) -> Cart:
    """
    Add `quantity` units of a product to a cart.

    If the product is already in the cart the quantities are merged; the
    combined quantity must be covered by current stock.

    Raises:
        ValidationError: bad quantity or product not listed
        StockConflictError: not enough stock for the combined quantity
        NotFoundError: cart or product missing
    """

    require_quantity(quantity)
    cart = _require_cart(cart_id)
    product = _require_product(product_id)

    existing = cart.find_line(product_id)
    cart.with_added(product, quantity)
    new_quantity = quantity if existing is None else existing.quantity + quantity

    if existing is not None:
        run_query(
            get_supabase()
            .table(_CART_ITEMS_TABLE)
            .update({"quantity": new_quantity})
            .eq("cart_id", str(cart_id))
            .eq("product_id", str(product_id)),
            "update cart item",
        )
    else:
        run_query(
            get_supabase()
            .table(_CART_ITEMS_TABLE)
            .insert(
                {
                    "cart_id": str(cart_id),
                    "product_id": str(product_id),
                    "quantity": new_quantity,
                    "added_at_utc": utc_now().isoformat(),
                }
            ),
            "insert cart item",
        )

    _touch(cart_id)
    return _require_populated(cart_id)


def remove_line_item(cart_id: UUID, product_id: UUID) -> None:
    """
    Delete one product's line from a cart.

    Raises:
        NotFoundError: the cart does not hold that product
    """

    deleted = run_query(
        get_supabase()
        .table(_CART_ITEMS_TABLE)
        .delete()
        .eq("cart_id", str(cart_id))
        .eq("product_id", str(product_id)),
        "remove cart item",
    )
    if not deleted:
        raise NotFoundError(f"Product {product_id} not found in cart {cart_id}")
    _touch(cart_id)


def remove_purchased_quantity(cart_id: UUID, product_id: UUID, quantity: int) -> None:
    """
    Take `quantity` purchased units of a product out of a cart.

    The line is deleted only while it still holds exactly `quantity`. If the
    owner changed it after checkout read the cart, only the purchased units are
    subtracted, and a line left with no units is deleted.

    Raises:
        NotFoundError: the cart no longer holds that product
    """

    require_quantity(quantity)
    deleted = run_query(
        get_supabase()
        .table(_CART_ITEMS_TABLE)
        .delete()
        .eq("cart_id", str(cart_id))
        .eq("product_id", str(product_id))
        .eq("quantity", quantity),
        "remove purchased cart item",
    )
    if deleted:
        _touch(cart_id)
        return

    rows = run_query(
        get_supabase()
        .table(_CART_ITEMS_TABLE)
        .select("quantity")
        .eq("cart_id", str(cart_id))
        .eq("product_id", str(product_id))
        .limit(1),
        "get cart item",
    )
    if not rows:
        raise NotFoundError(f"Product {product_id} not found in cart {cart_id}")

    current = int(rows[0]["quantity"])
    logger.warning(
        "Cart line changed during checkout",
        extra={
            "cart_id": str(cart_id),
            "product_id": str(product_id),
            "purchased": quantity,
            "current": current,
        },
    )

    items = get_supabase().table(_CART_ITEMS_TABLE)
    if current > quantity:
        query = items.update({"quantity": current - quantity})
    else:
        query = items.delete()
    adjusted = run_query(
        query.eq("cart_id", str(cart_id)).eq("product_id", str(product_id)).eq("quantity", current),
        "adjust purchased cart item",
    )
    if not adjusted:
        logger.warning(
            "Cart line left unchanged after checkout",
            extra={"cart_id": str(cart_id), "product_id": str(product_id), "purchased": quantity},
        )
        return
    _touch(cart_id)


def update_line_item_quantity(cart_id: UUID, product_id: UUID, quantity: int) -> Cart:
    """
    Set the quantity of an existing line, re-validating stock for the new quantity.
    """

    require_quantity(quantity)
    cart = _require_cart(cart_id)
    product = _require_product(product_id)
    cart.with_quantity(product, quantity)

    run_query(
        get_supabase()
        .table(_CART_ITEMS_TABLE)
        .update({"quantity": quantity})
        .eq("cart_id", str(cart_id))
        .eq("product_id", str(product_id)),
        "update cart item",
    )
    _touch(cart_id)
    return _require_populated(cart_id)


def replace_all_line_items(cart_id: UUID, items: Sequence[Tuple[UUID, int]]) -> Cart:
    """
    Replace the whole content of a cart.

    Every (product_id, quantity) pair is validated first; nothing is written
    unless all of them pass. The delete + insert runs inside the
    `replace_cart_items()` database function so readers never see a half
    replaced cart.
    """

    pairs = require_unique_products(items)
    cart = _require_cart(cart_id)

    products = get_products_by_ids(pid for pid, _ in pairs)
    resolved: List[Tuple[Product, int]] = []
    for product_id, quantity in pairs:
        require_quantity(quantity)
        product = products.get(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        resolved.append((product, quantity))

    updated = cart.replaced(resolved)

    data = run_rpc(
        lambda: get_supabase()
        .rpc(
            "replace_cart_items",
            {
                "p_cart_id": str(cart_id),
                "p_items": [
                    {"product_id": str(line.product_id), "quantity": line.quantity}
                    for line in updated.lines
                ],
            },
        )
        .execute(),
        "replace cart items",
    )
    if not data.get("success"):
        if data.get("error") == "NOT_FOUND":
            raise NotFoundError(f"Cart {cart_id} not found")
        raise ValidationError(str(data.get("message") or "Failed to replace cart items"))

    return _require_populated(cart_id)


def clear_cart(cart_id: UUID) -> Cart:
    """Remove every line from a cart."""

    cart = _require_cart(cart_id)
    run_query(
        get_supabase().table(_CART_ITEMS_TABLE).delete().eq("cart_id", str(cart_id)),
        "clear cart",
    )
    _touch(cart_id)
    return cart.cleared()


def _require_populated(cart_id: UUID) -> Cart:
    cart = get_cart(cart_id)
    if cart is None:
        raise NotFoundError(f"Cart {cart_id} not found")
    return cart


__all__ = [
    "create_cart",
    "get_cart",
    "add_line_item",
    "remove_line_item",
    "remove_purchased_quantity",
    "update_line_item_quantity",
    "replace_all_line_items",
    "clear_cart",
]
