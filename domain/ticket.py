"""
Domain: Ticket (purchase record).

Invariants implemented here:
- Ticket codes are exactly 10 characters from A-Z0-9.
- Each line's subtotal is unit_price * quantity; it is always recomputed.
- amount is the sum of line subtotals; it is always recomputed, never trusted.
- Unit prices are snapshotted at purchase time, so later product price changes
  never alter historical tickets.
- purchaser is an email snapshot, independent of later user changes.
- Tickets are immutable; a status transition produces a new instance.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Tuple
from uuid import UUID

from .errors import ValidationError
from .time import require_utc_timestamp
from .user import require_email

TICKET_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
TICKET_CODE_LENGTH = 10

_CODE_PATTERN = re.compile(rf"^[A-Z0-9]{{{TICKET_CODE_LENGTH}}}$")


class TicketStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    PARTIAL = "partial"
    CANCELLED = "cancelled"


def random_ticket_code() -> str:
    """Draw one candidate code. Uniqueness is checked by the ticket store."""
    return "".join(secrets.choice(TICKET_CODE_ALPHABET) for _ in range(TICKET_CODE_LENGTH))


@dataclass(frozen=True, slots=True)
class TicketLine:
    """A purchased line with its price snapshot."""

    product_id: UUID
    quantity: int
    unit_price: Decimal
    subtotal: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity < 1:
            raise ValidationError("quantity must be an integer greater than 0")
        if not isinstance(self.unit_price, Decimal) or self.unit_price < 0:
            raise ValidationError("unit_price must be a Decimal >= 0")
        object.__setattr__(self, "subtotal", self.unit_price * self.quantity)


@dataclass(frozen=True, slots=True)
class TicketSummary:
    code: str
    date: datetime
    amount: Decimal
    purchaser: str
    status: TicketStatus
    items_count: int


@dataclass(frozen=True, slots=True)
class Ticket:
    """
    Immutable record of a completed or partially completed purchase.

    `amount` is overwritten in __post_init__ with the sum of line subtotals.
    """

    ticket_id: UUID
    code: str
    purchase_datetime: datetime
    purchaser: str
    user_id: UUID
    lines: Tuple[TicketLine, ...] = field(default_factory=tuple)
    status: TicketStatus = TicketStatus.PENDING
    amount: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if not _CODE_PATTERN.match(self.code):
            raise ValidationError(
                f"ticket code must be {TICKET_CODE_LENGTH} characters from {TICKET_CODE_ALPHABET}"
            )
        require_email("purchaser", self.purchaser)
        require_utc_timestamp("purchase_datetime", self.purchase_datetime)
        object.__setattr__(self, "lines", tuple(self.lines))
        object.__setattr__(self, "status", TicketStatus(self.status))
        object.__setattr__(self, "amount", compute_amount(self.lines))

    @property
    def items_count(self) -> int:
        return len(self.lines)

    def with_status(self, status: TicketStatus) -> "Ticket":
        return replace(self, status=TicketStatus(status))

    def summary(self) -> TicketSummary:
        return TicketSummary(
            code=self.code,
            date=self.purchase_datetime,
            amount=self.amount,
            purchaser=self.purchaser,
            status=self.status,
            items_count=self.items_count,
        )


def compute_amount(lines: Iterable[TicketLine]) -> Decimal:
    return sum((line.subtotal for line in lines), Decimal("0"))


def initial_status(*, had_shortfall: bool) -> TicketStatus:
    """Status a checkout assigns at creation time."""
    return TicketStatus.PARTIAL if had_shortfall else TicketStatus.COMPLETED


@dataclass(frozen=True, slots=True)
class SalesSummary:
    total_sales: Decimal
    ticket_count: int


@dataclass(frozen=True, slots=True)
class TicketFilters:
    """Filters for the administrative ticket listing."""

    status: Optional[TicketStatus] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    limit: int = 100
    offset: int = 0

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValidationError("limit must be >= 1")
        if self.offset < 0:
            raise ValidationError("offset must be >= 0")
        if self.start is not None:
            require_utc_timestamp("start", self.start)
        if self.end is not None:
            require_utc_timestamp("end", self.end)


__all__ = [
    "TICKET_CODE_ALPHABET",
    "TICKET_CODE_LENGTH",
    "TicketStatus",
    "TicketLine",
    "TicketSummary",
    "Ticket",
    "SalesSummary",
    "TicketFilters",
    "compute_amount",
    "initial_status",
    "random_ticket_code",
]
