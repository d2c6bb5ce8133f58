"""
Purchase service for executing cart checkouts.

Handles:
- Partitioning the cart into fulfillable / unfulfillable lines
- Best-effort per-line processing (one line's failure never aborts the others)
- Atomic stock decrement via decrement_product_stock() PostgreSQL function
- Ticket creation with snapshotted prices and a unique code
- Fire-and-forget purchase confirmation
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Tuple
from uuid import UUID

from domain.cart import CartLine
from domain.errors import CheckoutError, NotFoundError, PersistenceError
from domain.product import Product
from domain.ticket import Ticket, TicketFilters, TicketLine, initial_status
from repositories.cart_repository import get_cart, remove_purchased_quantity
from repositories.product_repository import decrement_stock
from repositories.ticket_repository import (
    create_ticket,
    get_ticket_by_id,
    list_tickets,
    list_tickets_by_user,
)
from repositories.user_repository import get_user_by_id
from services.notification_service import dispatch_purchase_confirmation

logger = logging.getLogger(__name__)

Notifier = Callable[[str, Ticket, str, Mapping[UUID, Product]], object]

MESSAGE_COMPLETED = "Purchase completed successfully"
MESSAGE_PARTIAL = "Partial purchase completed. Some products did not have enough stock."
MESSAGE_EMPTY_CART = "Cart is empty"
MESSAGE_NO_STOCK = "No product has enough stock"
MESSAGE_NOTHING_PROCESSED = "No product could be processed"


@dataclass(frozen=True, slots=True)
class UnfulfillableLine:
    """A cart line that failed the stock/listing check at read time. It stays in the cart."""
    product_id: UUID
    title: str
    requested_quantity: int
    available_stock: int


@dataclass(frozen=True, slots=True)
class FailedLine:
    """A line that passed the read-time check but whose decrement failed. It stays in the cart."""
    product_id: UUID
    title: str
    requested_quantity: int
    reason: str


@dataclass(slots=True)
class LineOutcomes:
    """
    Accumulator threaded through a checkout.

    succeeded: ticket lines whose stock decrement went through
    failed: lines whose decrement (or other per-line step) failed
    skipped: lines rejected by the read-time check, never touched
    """
    succeeded: List[TicketLine] = field(default_factory=list)
    failed: List[FailedLine] = field(default_factory=list)
    skipped: List[UnfulfillableLine] = field(default_factory=list)

    @property
    def had_shortfall(self) -> bool:
        return bool(self.failed or self.skipped)


@dataclass(frozen=True, slots=True)
class PurchaseResult:
    """
    Result of a checkout attempt.

    success: True iff a ticket was created
    message: human-readable summary
    lines: per-line outcomes, returned as accumulated
    ticket: the created ticket (None when success is False)
    """
    success: bool
    message: str
    lines: LineOutcomes
    ticket: Optional[Ticket] = None

    @property
    def products_without_stock(self) -> List[UnfulfillableLine]:
        return self.lines.skipped

    @property
    def failed_products(self) -> List[FailedLine]:
        return self.lines.failed


def _title(line: CartLine) -> str:
    return line.product.title if line.product is not None else str(line.product_id)


def _partition(lines: tuple[CartLine, ...], outcomes: LineOutcomes) -> List[Tuple[CartLine, Product]]:
    """Split lines by `listed and stock >= quantity`; rejects go to outcomes.skipped."""

    fulfillable: List[Tuple[CartLine, Product]] = []
    for line in lines:
        product = line.product
        if product is not None and product.has_stock(line.quantity):
            fulfillable.append((line, product))
        else:
            outcomes.skipped.append(
                UnfulfillableLine(
                    product_id=line.product_id,
                    title=_title(line),
                    requested_quantity=line.quantity,
                    available_stock=product.stock if product is not None else 0,
                )
            )
    return fulfillable


def _process_line(cart_id: UUID, line: CartLine, product: Product, outcomes: LineOutcomes) -> None:
    """
    Decrement, record, then remove the purchased units from the cart. The cart
    is only touched after the decrement succeeded.
    """

    try:
        decrement_stock(product.product_id, line.quantity)
    except CheckoutError as e:
        logger.warning(
            "Checkout line failed",
            extra={"cart_id": str(cart_id), "product_id": str(product.product_id), "reason": str(e)},
        )
        outcomes.failed.append(
            FailedLine(
                product_id=product.product_id,
                title=product.title,
                requested_quantity=line.quantity,
                reason=str(e),
            )
        )
        return

    # Stock is gone from here on: the line must end up on the ticket
    outcomes.succeeded.append(
        TicketLine(product_id=product.product_id, quantity=line.quantity, unit_price=product.price)
    )

    try:
        remove_purchased_quantity(cart_id, product.product_id, line.quantity)
    except CheckoutError as e:
        logger.error(
            "Purchased line could not be removed from cart",
            extra={"cart_id": str(cart_id), "product_id": str(product.product_id), "reason": str(e)},
        )


def _notify(
    notify: Notifier,
    email: str,
    ticket: Ticket,
    display_name: str,
    products: Mapping[UUID, Product],
) -> None:
    try:
        notify(email, ticket, display_name, products)
    except Exception as e:  # noqa: BLE001
        logger.error(
            "Purchase confirmation could not be dispatched",
            extra={"ticket_code": ticket.code, "error": str(e)},
        )


def execute_checkout(user_id: UUID, notify: Optional[Notifier] = None) -> PurchaseResult:
    """
    Check out a user's cart.

    Process:
    1. Resolve the user and their cart with current product state (one read)
    2. Partition lines: listed and stock >= quantity -> fulfillable, else skipped
    3. Nothing fulfillable -> failure result, nothing mutated
    4. For each fulfillable line, in cart order and independently:
       - atomic stock decrement (re-checks stock at mutation time)
       - success: add ticket line, take the purchased units out of the cart
       - failure: record in failed, leave the cart line alone
    5. Any ticket lines -> create ticket (partial if anything was skipped or failed)
    6. Dispatch the confirmation; its failure is only logged
    7. Return PurchaseResult; success is False only when no ticket was created

    Args:
        user_id: purchaser
        notify: confirmation sender (defaults to the background SMTP dispatcher)

    Returns:
        PurchaseResult

    Raises:
        NotFoundError: user or cart missing (nothing mutated)
        ValidationError: stored user record is malformed (nothing mutated)
        PersistenceError: store failure outside per-line processing. Stock that
            was already decremented is not restored; a failed ticket insert is
            logged at CRITICAL with the decremented lines.

    Example:
        result = execute_checkout(user.user_id)
        if result.success:
            print(f"Ticket {result.ticket.code}: ${result.ticket.amount}")
        for line in result.products_without_stock:
            print(f"{line.title}: only {line.available_stock} left")
    """

    notify = notify or dispatch_purchase_confirmation

    # 1. Resolve user and cart
    user = get_user_by_id(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    cart = get_cart(user.cart_id)
    if cart is None:
        raise NotFoundError(f"Cart {user.cart_id} not found")

    outcomes = LineOutcomes()

    if cart.is_empty:
        return PurchaseResult(success=False, message=MESSAGE_EMPTY_CART, lines=outcomes)

    # 2. Partition
    fulfillable = _partition(cart.lines, outcomes)

    # 3. Nothing to buy
    if not fulfillable:
        return PurchaseResult(success=False, message=MESSAGE_NO_STOCK, lines=outcomes)

    # 4. Best-effort per line
    for line, product in fulfillable:
        _process_line(cart.cart_id, line, product, outcomes)

    if not outcomes.succeeded:
        return PurchaseResult(success=False, message=MESSAGE_NOTHING_PROCESSED, lines=outcomes)

    # 5. Ticket
    try:
        ticket = create_ticket(
            user_id=user.user_id,
            purchaser=user.email,
            lines=outcomes.succeeded,
            status=initial_status(had_shortfall=outcomes.had_shortfall),
        )
    except CheckoutError as e:
        # Decrements above are not rolled back; log enough to reconcile by hand
        logger.critical(
            "Stock decremented but ticket was not persisted",
            extra={
                "user_id": str(user.user_id),
                "lines": [
                    {"product_id": str(line.product_id), "quantity": line.quantity}
                    for line in outcomes.succeeded
                ],
            },
        )
        if isinstance(e, PersistenceError):
            raise
        raise PersistenceError(f"Failed to create ticket: {e}") from e

    # 6. Confirmation (detached)
    products: Dict[UUID, Product] = {
        line.product_id: product for line, product in fulfillable
    }
    _notify(notify, user.email, ticket, user.display_name, products)

    # 7. Result
    return PurchaseResult(
        success=True,
        message=MESSAGE_PARTIAL if outcomes.had_shortfall else MESSAGE_COMPLETED,
        lines=outcomes,
        ticket=ticket,
    )


def get_ticket(ticket_id: UUID) -> Optional[Ticket]:
    return get_ticket_by_id(ticket_id)


def get_user_tickets(user_id: UUID) -> List[Ticket]:
    return list_tickets_by_user(user_id)


def get_all_tickets(filters: Optional[TicketFilters] = None) -> List[Ticket]:
    return list_tickets(filters)


__all__ = [
    "UnfulfillableLine",
    "FailedLine",
    "LineOutcomes",
    "PurchaseResult",
    "execute_checkout",
    "get_ticket",
    "get_user_tickets",
    "get_all_tickets",
]
