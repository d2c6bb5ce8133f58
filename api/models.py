"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from domain.cart import Cart, CartLine
from domain.product import Product
from domain.ticket import SalesSummary, Ticket, TicketStatus
from services.purchase_service import FailedLine, PurchaseResult, UnfulfillableLine


# ============================================================================
# Product / Cart Models
# ============================================================================

class ProductSummary(BaseModel):
    """Product state as seen when the cart was read."""
    product_id: UUID
    title: str
    code: str
    price: Decimal
    stock: int
    status: bool
    category: str

    @classmethod
    def from_domain(cls, product: Product) -> "ProductSummary":
        return cls(
            product_id=product.product_id,
            title=product.title,
            code=product.code,
            price=product.price,
            stock=product.stock,
            status=product.status,
            category=product.category,
        )


class CartLineResponse(BaseModel):
    product_id: UUID
    quantity: int
    product: Optional[ProductSummary] = None
    subtotal: Decimal

    @classmethod
    def from_domain(cls, line: CartLine) -> "CartLineResponse":
        return cls(
            product_id=line.product_id,
            quantity=line.quantity,
            product=ProductSummary.from_domain(line.product) if line.product is not None else None,
            subtotal=line.subtotal,
        )


class CartResponse(BaseModel):
    """Cart with its lines in insertion order."""
    cart_id: UUID
    lines: List[CartLineResponse]
    total: Decimal
    total_items: int

    class Config:
        json_schema_extra = {
            "example": {
                "cart_id": "123e4567-e89b-12d3-a456-426614174000",
                "lines": [
                    {
                        "product_id": "123e4567-e89b-12d3-a456-426614174001",
                        "quantity": 2,
                        "product": None,
                        "subtotal": "39.98"
                    }
                ],
                "total": "39.98",
                "total_items": 2
            }
        }

    @classmethod
    def from_domain(cls, cart: Cart) -> "CartResponse":
        return cls(
            cart_id=cart.cart_id,
            lines=[CartLineResponse.from_domain(line) for line in cart.lines],
            total=cart.total,
            total_items=cart.total_items,
        )


class QuantityRequest(BaseModel):
    quantity: int = Field(1, ge=1, description="Number of units")


class CartItemInput(BaseModel):
    product_id: UUID
    quantity: int = Field(..., ge=1)


class ReplaceCartRequest(BaseModel):
    """Bulk replacement of a cart's content."""
    products: List[CartItemInput]

    class Config:
        json_schema_extra = {
            "example": {
                "products": [
                    {"product_id": "123e4567-e89b-12d3-a456-426614174001", "quantity": 2},
                    {"product_id": "123e4567-e89b-12d3-a456-426614174002", "quantity": 1}
                ]
            }
        }


# ============================================================================
# Ticket Models
# ============================================================================

class TicketLineResponse(BaseModel):
    product_id: UUID
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class TicketResponse(BaseModel):
    """Immutable purchase record."""
    ticket_id: UUID
    code: str
    purchase_datetime: datetime
    purchaser: str
    user_id: UUID
    status: TicketStatus
    amount: Decimal
    lines: List[TicketLineResponse]

    class Config:
        json_schema_extra = {
            "example": {
                "ticket_id": "123e4567-e89b-12d3-a456-426614174003",
                "code": "7QK2M9XA4B",
                "purchase_datetime": "2025-01-01T12:00:00Z",
                "purchaser": "buyer@example.com",
                "user_id": "123e4567-e89b-12d3-a456-426614174004",
                "status": "completed",
                "amount": "39.98",
                "lines": [
                    {
                        "product_id": "123e4567-e89b-12d3-a456-426614174001",
                        "quantity": 2,
                        "unit_price": "19.99",
                        "subtotal": "39.98"
                    }
                ]
            }
        }

    @classmethod
    def from_domain(cls, ticket: Ticket) -> "TicketResponse":
        return cls(
            ticket_id=ticket.ticket_id,
            code=ticket.code,
            purchase_datetime=ticket.purchase_datetime,
            purchaser=ticket.purchaser,
            user_id=ticket.user_id,
            status=ticket.status,
            amount=ticket.amount,
            lines=[
                TicketLineResponse(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    subtotal=line.subtotal,
                )
                for line in ticket.lines
            ],
        )


class TicketStatusUpdateRequest(BaseModel):
    status: TicketStatus


class SalesSummaryResponse(BaseModel):
    total_sales: Decimal
    ticket_count: int

    @classmethod
    def from_domain(cls, summary: SalesSummary) -> "SalesSummaryResponse":
        return cls(total_sales=summary.total_sales, ticket_count=summary.ticket_count)


# ============================================================================
# Purchase Models
# ============================================================================

class UnfulfillableLineResponse(BaseModel):
    product_id: UUID
    title: str
    requested_quantity: int
    available_stock: int

    @classmethod
    def from_domain(cls, line: UnfulfillableLine) -> "UnfulfillableLineResponse":
        return cls(
            product_id=line.product_id,
            title=line.title,
            requested_quantity=line.requested_quantity,
            available_stock=line.available_stock,
        )


class FailedLineResponse(BaseModel):
    product_id: UUID
    title: str
    requested_quantity: int
    error: str

    @classmethod
    def from_domain(cls, line: FailedLine) -> "FailedLineResponse":
        return cls(
            product_id=line.product_id,
            title=line.title,
            requested_quantity=line.requested_quantity,
            error=line.reason,
        )


class PurchaseResponse(BaseModel):
    """Response after a checkout."""
    success: bool
    message: str
    ticket: Optional[TicketResponse] = None
    products_without_stock: Optional[List[UnfulfillableLineResponse]] = None
    failed_products: Optional[List[FailedLineResponse]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "message": "Partial purchase completed. Some products did not have enough stock.",
                "ticket": None,
                "products_without_stock": [
                    {
                        "product_id": "123e4567-e89b-12d3-a456-426614174002",
                        "title": "Wireless mouse",
                        "requested_quantity": 3,
                        "available_stock": 1
                    }
                ],
                "failed_products": None
            }
        }

    @classmethod
    def from_result(cls, result: PurchaseResult) -> "PurchaseResponse":
        return cls(
            success=result.success,
            message=result.message,
            ticket=TicketResponse.from_domain(result.ticket) if result.ticket is not None else None,
            products_without_stock=[
                UnfulfillableLineResponse.from_domain(line) for line in result.products_without_stock
            ] or None,
            failed_products=[
                FailedLineResponse.from_domain(line) for line in result.failed_products
            ] or None,
        )


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int

    class Config:
        json_schema_extra = {
            "example": {
                "error": "NOT_FOUND",
                "detail": "Cart not found",
                "status_code": 404
            }
        }
