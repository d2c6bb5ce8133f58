"""
Domain: error taxonomy for the checkout pipeline.

Each error carries a stable ErrorCode and a user-safe message. The classes also
inherit from the builtin exception that matches their meaning so callers that
catch ValueError / LookupError / RuntimeError keep working.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional
from uuid import UUID


class ErrorCode(str, Enum):
    """Domain error codes."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    NOT_FOUND = "NOT_FOUND"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"


class CheckoutError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode = ErrorCode.VALIDATION_FAILED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(CheckoutError, ValueError):
    """Malformed input (quantity, field constraint, unknown reference) rejected before mutation."""

    code = ErrorCode.VALIDATION_FAILED


class StockConflictError(ValidationError):
    """Raised when a product cannot cover the requested quantity at mutation time."""

    code = ErrorCode.INSUFFICIENT_STOCK

    def __init__(
        self,
        product_id: UUID,
        requested: int,
        available: Optional[int] = None,
        message: Optional[str] = None,
    ) -> None:
        if message is None:
            if available is None:
                message = f"Insufficient stock for product {product_id}: requested {requested}"
            else:
                message = (
                    f"Insufficient stock for product {product_id}: "
                    f"available {available}, requested {requested}"
                )
        super().__init__(message)
        self.product_id = product_id
        self.requested = requested
        self.available = available


class NotFoundError(CheckoutError, LookupError):
    """Raised when a cart, user, product or ticket does not exist."""

    code = ErrorCode.NOT_FOUND


class PersistenceError(CheckoutError, RuntimeError):
    """Backing store unreachable or returned an error."""

    code = ErrorCode.PERSISTENCE_FAILED

    def __init__(self, message: str, db_code: Optional[str] = None) -> None:
        super().__init__(message)
        # PostgreSQL SQLSTATE when the store reported one (e.g. "23505")
        self.db_code = db_code


class NotificationError(CheckoutError, RuntimeError):
    """Confirmation delivery failed. Always logged, never propagated past the engine."""

    code = ErrorCode.NOTIFICATION_FAILED


__all__ = [
    "ErrorCode",
    "CheckoutError",
    "ValidationError",
    "StockConflictError",
    "NotFoundError",
    "PersistenceError",
    "NotificationError",
]
