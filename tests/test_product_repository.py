"""
Tests for `repositories/product_repository.py` against the in-memory store.

Covers rules:
- decrement_stock fails closed: bad quantity, insufficient stock, delisted, missing.
- Concurrent decrements never oversell the last unit.
- increment_stock validates quantity.
- has_stock is a read-only check.
"""

from __future__ import annotations

import threading
from decimal import Decimal
from uuid import uuid4

import pytest
from postgrest.exceptions import APIError

from domain.errors import NotFoundError, PersistenceError, StockConflictError, ValidationError
from repositories.product_repository import (
    create_product,
    decrement_stock,
    get_product_by_id,
    get_products_by_ids,
    has_stock,
    increment_stock,
    list_available_products,
    list_products_by_category,
)


def test_create_and_read_back(fake_db) -> None:
    product = create_product("Desk lamp", "lamp-01", Decimal("19.99"), 4, "home")

    loaded = get_product_by_id(product.product_id)

    assert loaded == product
    assert loaded.code == "LAMP-01"
    assert get_product_by_id(uuid4()) is None


def test_duplicate_code_is_validation_error(fake_db) -> None:
    create_product("Desk lamp", "LAMP-01", Decimal("19.99"), 4, "home")

    with pytest.raises(ValidationError):
        create_product("Other lamp", "lamp-01", Decimal("9.99"), 1, "home")


def test_decrement_subtracts_and_returns_remaining(fake_db, make_product) -> None:
    product = make_product(stock=5)

    assert decrement_stock(product.product_id, 2) == 3
    assert fake_db.product_row(product.product_id)["stock"] == 3


@pytest.mark.parametrize("quantity", [0, -2])
def test_decrement_rejects_non_positive_quantity(fake_db, make_product, quantity) -> None:
    product = make_product(stock=5)

    with pytest.raises(ValidationError):
        decrement_stock(product.product_id, quantity)
    assert fake_db.product_row(product.product_id)["stock"] == 5


def test_decrement_fails_closed_on_insufficient_stock(fake_db, make_product) -> None:
    product = make_product(stock=1)

    with pytest.raises(StockConflictError) as exc:
        decrement_stock(product.product_id, 2)

    assert exc.value.available == 1
    assert fake_db.product_row(product.product_id)["stock"] == 1


def test_decrement_fails_for_delisted_product(fake_db, make_product) -> None:
    product = make_product(stock=5, status=False)

    with pytest.raises(StockConflictError):
        decrement_stock(product.product_id, 1)
    assert fake_db.product_row(product.product_id)["stock"] == 5


def test_decrement_missing_product(fake_db) -> None:
    with pytest.raises(NotFoundError):
        decrement_stock(uuid4(), 1)


def test_decrement_store_failure_is_persistence_error(fake_db, make_product) -> None:
    product = make_product(stock=5)
    fake_db.fail_next = APIError({"message": "connection reset", "code": "08006"})

    with pytest.raises(PersistenceError):
        decrement_stock(product.product_id, 1)


def test_concurrent_decrements_never_oversell(fake_db, make_product) -> None:
    """20 threads race for 5 units: exactly 5 win and stock ends at 0."""

    product = make_product(stock=5)
    barrier = threading.Barrier(20)
    wins = []
    losses = []

    def worker() -> None:
        barrier.wait()
        try:
            decrement_stock(product.product_id, 1)
            wins.append(1)
        except StockConflictError:
            losses.append(1)

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(wins) == 5
    assert len(losses) == 15
    assert fake_db.product_row(product.product_id)["stock"] == 0


def test_increment(fake_db, make_product) -> None:
    product = make_product(stock=0)

    assert increment_stock(product.product_id, 3) == 3
    with pytest.raises(ValidationError):
        increment_stock(product.product_id, 0)
    with pytest.raises(NotFoundError):
        increment_stock(uuid4(), 1)


def test_has_stock(fake_db, make_product) -> None:
    listed = make_product(stock=2)
    delisted = make_product(stock=2, status=False)

    assert has_stock(listed.product_id, 2) is True
    assert has_stock(listed.product_id, 3) is False
    assert has_stock(delisted.product_id, 1) is False
    assert has_stock(uuid4(), 1) is False


def test_listings(fake_db, make_product) -> None:
    in_stock = make_product(stock=1, category="books")
    make_product(stock=0, category="books")
    make_product(stock=3, status=False, category="toys")

    assert [p.product_id for p in list_available_products()] == [in_stock.product_id]
    assert len(list_products_by_category("books")) == 2
    assert set(get_products_by_ids([in_stock.product_id, uuid4()])) == {in_stock.product_id}
    assert get_products_by_ids([]) == {}
