"""
Tests for `domain/product.py`.

Covers rules:
- Field constraints are checked at construction (title, code, price, stock, category).
- Codes are normalized to uppercase.
- has_stock requires listed status and enough units.
- Product is immutable (frozen).
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from decimal import Decimal
from uuid import UUID

import pytest

from domain.errors import ValidationError
from domain.product import Product

PRODUCT_ID = UUID("00000000-0000-0000-0000-000000000101")


def _product(**overrides) -> Product:
    fields = dict(
        product_id=PRODUCT_ID,
        title="Mechanical keyboard",
        code="kb-001",
        price=Decimal("49.90"),
        stock=5,
        category="peripherals",
    )
    fields.update(overrides)
    return Product(**fields)


def test_code_is_normalized_to_uppercase() -> None:
    assert _product(code="  kb-001 ").code == "KB-001"


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "ab"},
        {"title": "x" * 201},
        {"code": "KB 001"},
        {"price": Decimal("-0.01")},
        {"price": Decimal("NaN")},
        {"price": 10},
        {"stock": -1},
        {"stock": 1.5},
        {"stock": True},
        {"category": " a "},
        {"description": "d" * 1001},
    ],
)
def test_invalid_fields_are_rejected(overrides) -> None:
    """Verify every field constraint raises ValidationError."""

    with pytest.raises(ValidationError):
        _product(**overrides)


def test_has_stock_requires_listing_and_quantity() -> None:
    product = _product(stock=3)

    assert product.has_stock(3) is True
    assert product.has_stock(4) is False
    assert _product(stock=3, status=False).has_stock(1) is False


def test_is_available() -> None:
    assert _product(stock=1).is_available is True
    assert _product(stock=0).is_available is False
    assert _product(status=False).is_available is False


def test_product_is_immutable() -> None:
    product = _product()

    with pytest.raises(FrozenInstanceError):
        product.stock = 0  # type: ignore[misc]
