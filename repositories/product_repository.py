"""
Product repository (Inventory Store).

Persistence operations for the Product domain entity plus the stock counters.

Stock changes never use read-then-write from Python: both directions go through
PostgreSQL functions (see sql/schema.sql) that check the precondition and apply
the change in a single UPDATE, so two concurrent checkouts cannot both pass the
"stock >= quantity" check for the last unit.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
from uuid import UUID, uuid4

from domain.errors import NotFoundError, PersistenceError, StockConflictError, ValidationError
from domain.product import Product, normalize_code
from domain.time import utc_now
from repositories.client import get_supabase
from repositories.rows import (
    UNIQUE_VIOLATION,
    parse_decimal,
    parse_optional_datetime,
    run_query,
    run_rpc,
)

logger = logging.getLogger(__name__)

# Supabase table name for products.
# Keep this aligned with sql/schema.sql.
_PRODUCTS_TABLE: str = "products"


def _row_to_product(row: Mapping[str, Any]) -> Product:
    """Convert a Supabase row into a Product."""

    return Product(
        product_id=UUID(str(row["product_id"])),
        title=str(row["title"]),
        code=str(row["code"]),
        price=parse_decimal(row["price"], name="price"),
        stock=int(row["stock"]),
        category=str(row["category"]),
        status=bool(row.get("status", True)),
        description=row.get("description"),
        thumbnails=tuple(row.get("thumbnails") or ()),
        created_at=parse_optional_datetime(row, "created_at_utc"),
        updated_at=parse_optional_datetime(row, "updated_at_utc"),
    )


def _require_positive_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be an integer greater than 0")


def get_product_by_id(product_id: UUID) -> Optional[Product]:
    """
    Retrieve a single product by its ID.

    Returns:
        Product or None if not found
    """

    rows = run_query(
        get_supabase()
        .table(_PRODUCTS_TABLE)
        .select("*")
        .eq("product_id", str(product_id))
        .limit(1),
        "get product",
    )
    if not rows:
        return None
    return _row_to_product(rows[0])


def get_products_by_ids(product_ids: Iterable[UUID]) -> Dict[UUID, Product]:
    """
    Fetch many products in one read.

    Returns:
        Mapping of product_id -> Product; missing IDs are simply absent.
    """

    ids = list(dict.fromkeys(str(pid) for pid in product_ids))
    if not ids:
        return {}

    rows = run_query(
        get_supabase().table(_PRODUCTS_TABLE).select("*").in_("product_id", ids),
        "list products",
    )
    products = [_row_to_product(row) for row in rows]
    return {p.product_id: p for p in products}


def list_available_products() -> List[Product]:
    """Listed products holding at least one unit."""

    rows = run_query(
        get_supabase()
        .table(_PRODUCTS_TABLE)
        .select("*")
        .eq("status", True)
        .gt("stock", 0)
        .order("title"),
        "list available products",
    )
    return [_row_to_product(row) for row in rows]


def list_products_by_category(category: str) -> List[Product]:
    rows = run_query(
        get_supabase()
        .table(_PRODUCTS_TABLE)
        .select("*")
        .eq("category", category.strip())
        .order("title"),
        "list products by category",
    )
    return [_row_to_product(row) for row in rows]


def create_product(
    title: str,
    code: str,
    price: Decimal,
    stock: int,
    category: str,
    description: Optional[str] = None,
    status: bool = True,
    thumbnails: Sequence[str] = (),
) -> Product:
    """
    Insert a new product.

    Field constraints are validated by constructing the Product before the insert.

    Raises:
        ValidationError: a field is invalid or the code is already in use.
    """

    now = utc_now()
    product = Product(
        product_id=uuid4(),
        title=title,
        code=code,
        price=price,
        stock=stock,
        category=category,
        status=status,
        description=description,
        thumbnails=tuple(thumbnails),
        created_at=now,
        updated_at=now,
    )

    payload: dict[str, Any] = {
        "product_id": str(product.product_id),
        "title": product.title,
        "code": product.code,
        "price": str(product.price),
        "stock": product.stock,
        "category": product.category,
        "status": product.status,
        "description": product.description,
        "thumbnails": list(product.thumbnails),
        "created_at_utc": now.isoformat(),
        "updated_at_utc": now.isoformat(),
    }

    try:
        run_query(get_supabase().table(_PRODUCTS_TABLE).insert(payload), "create product")
    except PersistenceError as e:
        if e.db_code == UNIQUE_VIOLATION:
            raise ValidationError(f"A product with code {normalize_code(code)} already exists") from None
        raise

    return product


def _stock_rpc(function: str, product_id: UUID, quantity: int, action: str) -> int:
    data = run_rpc(
        lambda: get_supabase()
        .rpc(function, {"p_product_id": str(product_id), "p_quantity": quantity})
        .execute(),
        action,
    )

    if data.get("success"):
        return int(data["stock"])

    code = data.get("error")
    if code == "NOT_FOUND":
        raise NotFoundError(f"Product {product_id} not found")
    if code in ("INSUFFICIENT_STOCK", "PRODUCT_DELISTED"):
        available = data.get("available")
        raise StockConflictError(
            product_id,
            requested=quantity,
            available=int(available) if available is not None else None,
            message=data.get("message"),
        )
    if code == "INVALID_QUANTITY":
        raise ValidationError(str(data.get("message") or "quantity must be greater than 0"))
    raise PersistenceError(f"Failed to {action}: {data.get('message') or code}")


def decrement_stock(product_id: UUID, quantity: int) -> int:
    """
    Atomically subtract `quantity` from a product's stock.

    The guard (listed AND stock >= quantity) and the subtraction run as one
    conditional UPDATE inside `decrement_product_stock()`.

    Returns:
        Remaining stock after the decrement.

    Raises:
        ValidationError: quantity <= 0
        StockConflictError: product delisted or stock below quantity
        NotFoundError: product does not exist
        PersistenceError: store failure
    """

    _require_positive_quantity(quantity)
    remaining = _stock_rpc("decrement_product_stock", product_id, quantity, "decrement stock")
    logger.debug("Stock decremented", extra={"product_id": str(product_id), "quantity": quantity, "remaining": remaining})
    return remaining


def increment_stock(product_id: UUID, quantity: int) -> int:
    """
    Atomically add `quantity` to a product's stock (restock / compensation flows).

    Returns:
        Stock after the increment.
    """

    _require_positive_quantity(quantity)
    return _stock_rpc("increment_product_stock", product_id, quantity, "increment stock")


def has_stock(product_id: UUID, quantity: int) -> bool:
    """Read-only check: product exists, is listed and holds at least `quantity` units."""

    product = get_product_by_id(product_id)
    if product is None:
        return False
    return product.has_stock(quantity)


__all__ = [
    "get_product_by_id",
    "get_products_by_ids",
    "list_available_products",
    "list_products_by_category",
    "create_product",
    "decrement_stock",
    "increment_stock",
    "has_stock",
]
