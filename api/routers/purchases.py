"""
Purchases API Endpoints.

Checkout of the caller's own cart.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from api.dependencies import get_current_user
from api.models import PurchaseResponse
from domain.errors import NotFoundError, PersistenceError
from domain.user import User
from services.purchase_service import execute_checkout

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/carts/{cart_id}/purchase",
    response_model=PurchaseResponse,
    summary="Checkout Cart",
    description="Purchase every line of the cart that has enough stock; the rest stays in the cart.",
    responses={400: {"model": PurchaseResponse}},
)
def purchase_cart(cart_id: UUID, user: User = Depends(get_current_user)):
    """
    Check out the caller's cart.

    **Partial fulfillment:**
    Lines without enough stock (or whose product was delisted) are reported in
    `products_without_stock` and stay in the cart. Lines that pass the check
    but lose a stock race at decrement time are reported in `failed_products`
    and also stay in the cart. Everything else is purchased and removed.

    **Status codes:**
    - 200: a ticket was created (status `completed` or `partial`)
    - 400: nothing could be purchased (empty cart or no stock)
    - 403: the cart does not belong to the caller
    - 404: the cart does not exist
    - 500: storage failure
    """
    if not user.owns_cart(cart_id):
        raise HTTPException(status_code=403, detail="You can only purchase your own cart")

    try:
        result = execute_checkout(user.user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PersistenceError as e:
        logger.error("Checkout failed on storage", extra={"user_id": str(user.user_id), "error": str(e)})
        raise HTTPException(
            status_code=500,
            detail=f"Failed to process purchase: {str(e)}"
        )

    response = PurchaseResponse.from_result(result)
    if not result.success:
        return JSONResponse(status_code=400, content=response.model_dump(mode="json"))
    return response
