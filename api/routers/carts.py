"""
Carts API Endpoints.

Endpoints for reading and editing a cart's line items.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_current_user, http_error, require_cart_access
from api.models import CartResponse, QuantityRequest, ReplaceCartRequest
from domain.errors import CheckoutError
from domain.user import User
from repositories.cart_repository import (
    add_line_item,
    clear_cart,
    create_cart,
    get_cart,
    remove_line_item,
    replace_all_line_items,
    update_line_item_quantity,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/carts",
    response_model=CartResponse,
    status_code=201,
    summary="Create Cart",
)
def create_empty_cart():
    """Create an empty cart. Users normally get theirs at sign-up."""
    try:
        return CartResponse.from_domain(create_cart())
    except CheckoutError as e:
        raise http_error(e)


@router.get(
    "/carts/{cart_id}",
    response_model=CartResponse,
    summary="Get Cart",
    description="Cart lines in insertion order with current product state."
)
def read_cart(cart_id: UUID):
    try:
        cart = get_cart(cart_id)
    except CheckoutError as e:
        raise http_error(e)

    if cart is None:
        raise HTTPException(status_code=404, detail=f"Cart {cart_id} not found")
    return CartResponse.from_domain(cart)


@router.post(
    "/carts/{cart_id}/products/{product_id}",
    response_model=CartResponse,
    summary="Add Product To Cart",
)
def add_product(
    cart_id: UUID,
    product_id: UUID,
    request: QuantityRequest = QuantityRequest(),
    user: User = Depends(get_current_user),
):
    """
    Add units of a product to the cart.

    Re-adding a product already in the cart merges the quantities; the merged
    quantity must be covered by current stock.
    """
    require_cart_access(cart_id, user)
    try:
        return CartResponse.from_domain(add_line_item(cart_id, product_id, request.quantity))
    except CheckoutError as e:
        logger.info("Add to cart rejected", extra={"cart_id": str(cart_id), "reason": str(e)})
        raise http_error(e)


@router.put(
    "/carts/{cart_id}/products/{product_id}",
    response_model=CartResponse,
    summary="Update Product Quantity",
)
def update_quantity(
    cart_id: UUID,
    product_id: UUID,
    request: QuantityRequest,
    user: User = Depends(get_current_user),
):
    require_cart_access(cart_id, user)
    try:
        return CartResponse.from_domain(update_line_item_quantity(cart_id, product_id, request.quantity))
    except CheckoutError as e:
        raise http_error(e)


@router.delete(
    "/carts/{cart_id}/products/{product_id}",
    response_model=CartResponse,
    summary="Remove Product From Cart",
)
def remove_product(
    cart_id: UUID,
    product_id: UUID,
    user: User = Depends(get_current_user),
):
    require_cart_access(cart_id, user)
    try:
        remove_line_item(cart_id, product_id)
        cart = get_cart(cart_id)
    except CheckoutError as e:
        raise http_error(e)

    if cart is None:
        raise HTTPException(status_code=404, detail=f"Cart {cart_id} not found")
    return CartResponse.from_domain(cart)


@router.put(
    "/carts/{cart_id}",
    response_model=CartResponse,
    summary="Replace Cart Content",
    description="Validates every item first; the cart is only replaced if all of them pass."
)
def replace_cart(
    cart_id: UUID,
    request: ReplaceCartRequest,
    user: User = Depends(get_current_user),
):
    require_cart_access(cart_id, user)
    items = [(item.product_id, item.quantity) for item in request.products]
    try:
        return CartResponse.from_domain(replace_all_line_items(cart_id, items))
    except CheckoutError as e:
        raise http_error(e)


@router.delete(
    "/carts/{cart_id}",
    response_model=CartResponse,
    summary="Clear Cart",
)
def empty_cart(cart_id: UUID, user: User = Depends(get_current_user)):
    require_cart_access(cart_id, user)
    try:
        return CartResponse.from_domain(clear_cart(cart_id))
    except CheckoutError as e:
        raise http_error(e)
