"""
Tests for `repositories/cart_repository.py` against the in-memory store.

Covers rules:
- Lines are returned in insertion order with products loaded.
- Re-adding merges quantities; combined quantity is checked against stock.
- Bulk replacement writes nothing unless every item passes.
- Removing a product that is not in the cart is NotFoundError.
- Removing purchased units leaves any units added since in the line.
"""

from __future__ import annotations

import logging
from uuid import uuid4

import pytest

from domain.errors import NotFoundError, StockConflictError, ValidationError
from repositories.cart_repository import (
    add_line_item,
    clear_cart,
    create_cart,
    get_cart,
    remove_line_item,
    remove_purchased_quantity,
    replace_all_line_items,
    update_line_item_quantity,
)


def test_get_missing_cart_returns_none(fake_db) -> None:
    assert get_cart(uuid4()) is None


def test_add_keeps_insertion_order_and_loads_products(fake_db, make_product) -> None:
    cart = create_cart()
    a, b, c = make_product(), make_product(), make_product()

    add_line_item(cart.cart_id, b.product_id, 1)
    add_line_item(cart.cart_id, a.product_id, 1)
    loaded = add_line_item(cart.cart_id, c.product_id, 1)

    assert [line.product_id for line in loaded.lines] == [b.product_id, a.product_id, c.product_id]
    assert all(line.product is not None for line in loaded.lines)


def test_re_add_merges(fake_db, make_product) -> None:
    cart = create_cart()
    a = make_product(stock=5)

    add_line_item(cart.cart_id, a.product_id, 2)
    loaded = add_line_item(cart.cart_id, a.product_id, 3)

    assert len(loaded.lines) == 1
    assert loaded.lines[0].quantity == 5
    assert len(fake_db.rows("cart_items")) == 1


def test_re_add_beyond_stock_is_rejected(fake_db, make_product) -> None:
    cart = create_cart()
    a = make_product(stock=3)
    add_line_item(cart.cart_id, a.product_id, 2)

    with pytest.raises(StockConflictError):
        add_line_item(cart.cart_id, a.product_id, 2)

    assert get_cart(cart.cart_id).lines[0].quantity == 2


def test_add_rejects_delisted_and_unknown(fake_db, make_product) -> None:
    cart = create_cart()

    with pytest.raises(ValidationError):
        add_line_item(cart.cart_id, make_product(status=False).product_id, 1)
    with pytest.raises(NotFoundError):
        add_line_item(cart.cart_id, uuid4(), 1)
    with pytest.raises(NotFoundError):
        add_line_item(uuid4(), make_product().product_id, 1)


def test_remove(fake_db, make_product) -> None:
    cart = create_cart()
    a, b = make_product(), make_product()
    add_line_item(cart.cart_id, a.product_id, 1)
    add_line_item(cart.cart_id, b.product_id, 1)

    remove_line_item(cart.cart_id, a.product_id)

    assert [line.product_id for line in get_cart(cart.cart_id).lines] == [b.product_id]
    with pytest.raises(NotFoundError):
        remove_line_item(cart.cart_id, a.product_id)


def test_update_quantity_revalidates(fake_db, make_product) -> None:
    cart = create_cart()
    a = make_product(stock=4)
    add_line_item(cart.cart_id, a.product_id, 1)

    assert update_line_item_quantity(cart.cart_id, a.product_id, 4).lines[0].quantity == 4
    with pytest.raises(StockConflictError):
        update_line_item_quantity(cart.cart_id, a.product_id, 5)
    with pytest.raises(ValidationError):
        update_line_item_quantity(cart.cart_id, a.product_id, 0)


def test_replace_all_is_all_or_nothing(fake_db, make_product) -> None:
    cart = create_cart()
    a, b, scarce = make_product(), make_product(), make_product(stock=1)
    add_line_item(cart.cart_id, a.product_id, 1)

    with pytest.raises(StockConflictError):
        replace_all_line_items(cart.cart_id, [(b.product_id, 1), (scarce.product_id, 2)])
    assert [line.product_id for line in get_cart(cart.cart_id).lines] == [a.product_id]

    with pytest.raises(NotFoundError):
        replace_all_line_items(cart.cart_id, [(uuid4(), 1)])
    with pytest.raises(ValidationError):
        replace_all_line_items(cart.cart_id, [(b.product_id, 1), (b.product_id, 2)])

    replaced = replace_all_line_items(cart.cart_id, [(scarce.product_id, 1), (b.product_id, 3)])
    assert [(line.product_id, line.quantity) for line in replaced.lines] == [
        (scarce.product_id, 1),
        (b.product_id, 3),
    ]


def test_clear(fake_db, make_product) -> None:
    cart = create_cart()
    add_line_item(cart.cart_id, make_product().product_id, 1)

    assert clear_cart(cart.cart_id).is_empty
    assert get_cart(cart.cart_id).is_empty
    with pytest.raises(NotFoundError):
        clear_cart(uuid4())


def test_remove_purchased_quantity_deletes_unchanged_line(fake_db, make_product) -> None:
    cart = create_cart()
    a, b = make_product(), make_product()
    add_line_item(cart.cart_id, a.product_id, 2)
    add_line_item(cart.cart_id, b.product_id, 1)

    remove_purchased_quantity(cart.cart_id, a.product_id, 2)

    assert [line.product_id for line in get_cart(cart.cart_id).lines] == [b.product_id]


def test_remove_purchased_quantity_keeps_units_added_since(fake_db, make_product, caplog) -> None:
    cart = create_cart()
    a = make_product(stock=10)
    add_line_item(cart.cart_id, a.product_id, 5)

    with caplog.at_level(logging.WARNING, logger="repositories.cart_repository"):
        remove_purchased_quantity(cart.cart_id, a.product_id, 2)

    assert [(line.product_id, line.quantity) for line in get_cart(cart.cart_id).lines] == [(a.product_id, 3)]
    assert "Cart line changed during checkout" in caplog.text


def test_remove_purchased_quantity_of_missing_line(fake_db, make_product) -> None:
    cart = create_cart()

    with pytest.raises(NotFoundError):
        remove_purchased_quantity(cart.cart_id, make_product().product_id, 1)
    with pytest.raises(ValidationError):
        remove_purchased_quantity(cart.cart_id, make_product().product_id, 0)
