"""
Ticket repository (Ticket Store).

Append-only persistence for purchase records. Tickets are inserted once and
only ever updated through `update_ticket_status()` (administrative tooling).

Ticket lines are stored as a JSON array on the ticket row, each with its
snapshotted unit price, so later price changes cannot touch history.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence
from uuid import UUID, uuid4

from domain.errors import NotFoundError, PersistenceError
from domain.ticket import (
    SalesSummary,
    Ticket,
    TicketFilters,
    TicketLine,
    TicketStatus,
    random_ticket_code,
)
from domain.time import utc_now
from repositories.client import get_supabase
from repositories.rows import (
    UNIQUE_VIOLATION,
    parse_decimal,
    parse_utc_datetime,
    run_query,
    to_iso_utc,
)

logger = logging.getLogger(__name__)

# Supabase table name for tickets.
# Keep this aligned with sql/schema.sql.
_TICKETS_TABLE: str = "tickets"

# Concurrent creators can still race between the existence check and the
# insert; the unique index on `code` catches that and we draw again.
_MAX_INSERT_ATTEMPTS: int = 5


def _line_to_json(line: TicketLine) -> dict[str, Any]:
    return {
        "product_id": str(line.product_id),
        "quantity": line.quantity,
        "unit_price": str(line.unit_price),
        "subtotal": str(line.subtotal),
    }


def _row_to_ticket(row: Mapping[str, Any]) -> Ticket:
    """Convert a Supabase row into a Ticket."""

    lines = tuple(
        TicketLine(
            product_id=UUID(str(item["product_id"])),
            quantity=int(item["quantity"]),
            unit_price=parse_decimal(item["unit_price"], name="unit_price"),
        )
        for item in row.get("lines") or []
    )
    return Ticket(
        ticket_id=UUID(str(row["ticket_id"])),
        code=str(row["code"]),
        purchase_datetime=parse_utc_datetime(row["purchase_datetime_utc"]),
        purchaser=str(row["purchaser"]),
        user_id=UUID(str(row["user_id"])),
        lines=lines,
        status=TicketStatus(str(row["status"])),
    )


def code_exists(code: str) -> bool:
    rows = run_query(
        get_supabase().table(_TICKETS_TABLE).select("ticket_id").eq("code", code).limit(1),
        "check ticket code",
    )
    return bool(rows)


def generate_unique_code() -> str:
    """
    Draw 10-character codes from A-Z0-9 until one is not already in use.

    There is no retry cap: with 36^10 possible codes a collision is already
    unlikely, and several in a row are practically impossible.
    """

    code = random_ticket_code()
    while code_exists(code):
        logger.info("Ticket code collision, drawing again")
        code = random_ticket_code()
    return code


def create_ticket(
    user_id: UUID,
    purchaser: str,
    lines: Sequence[TicketLine],
    status: TicketStatus = TicketStatus.PENDING,
) -> Ticket:
    """
    Persist a new ticket.

    - Subtotals and `amount` are recomputed from the lines (Ticket does this on
      construction); nothing the caller computed is trusted.
    - `purchase_datetime` is set to now (UTC).
    - The code is unique: checked before insert, and a unique-violation on
      insert (concurrent creation) draws a fresh code.

    Raises:
        ValidationError: invalid purchaser email or lines
        PersistenceError: store failure
    """

    for attempt in range(1, _MAX_INSERT_ATTEMPTS + 1):
        ticket = Ticket(
            ticket_id=uuid4(),
            code=generate_unique_code(),
            purchase_datetime=utc_now(),
            purchaser=purchaser,
            user_id=user_id,
            lines=tuple(lines),
            status=status,
        )

        payload: dict[str, Any] = {
            "ticket_id": str(ticket.ticket_id),
            "code": ticket.code,
            "purchase_datetime_utc": ticket.purchase_datetime.isoformat(),
            "purchaser": ticket.purchaser,
            "user_id": str(ticket.user_id),
            "status": ticket.status.value,
            "amount": str(ticket.amount),
            "lines": [_line_to_json(line) for line in ticket.lines],
        }

        try:
            run_query(get_supabase().table(_TICKETS_TABLE).insert(payload), "create ticket")
        except PersistenceError as e:
            if e.db_code == UNIQUE_VIOLATION and attempt < _MAX_INSERT_ATTEMPTS:
                logger.warning("Ticket code taken concurrently, retrying", extra={"attempt": attempt})
                continue
            raise

        logger.info(
            "Ticket created",
            extra={"ticket_code": ticket.code, "amount": str(ticket.amount), "status": ticket.status.value},
        )
        return ticket

    # Unreachable: the last attempt either returns or raises
    raise PersistenceError("Failed to create ticket: code generation exhausted")


def get_ticket_by_id(ticket_id: UUID) -> Optional[Ticket]:
    """
    Retrieve a single ticket by its ID.

    Returns:
        Ticket or None if not found
    """

    rows = run_query(
        get_supabase().table(_TICKETS_TABLE).select("*").eq("ticket_id", str(ticket_id)).limit(1),
        "get ticket",
    )
    if not rows:
        return None
    return _row_to_ticket(rows[0])


def get_ticket_by_code(code: str) -> Optional[Ticket]:
    rows = run_query(
        get_supabase().table(_TICKETS_TABLE).select("*").eq("code", code.strip().upper()).limit(1),
        "get ticket by code",
    )
    if not rows:
        return None
    return _row_to_ticket(rows[0])


def list_tickets_by_user(user_id: UUID) -> List[Ticket]:
    """
    Retrieve a user's tickets, newest first.

    Returns:
        List[Ticket] (possibly empty)
    """

    rows = run_query(
        get_supabase()
        .table(_TICKETS_TABLE)
        .select("*")
        .eq("user_id", str(user_id))
        .order("purchase_datetime_utc", desc=True),
        "list tickets",
    )
    return [_row_to_ticket(row) for row in rows]


def list_tickets_by_purchaser(email: str) -> List[Ticket]:
    rows = run_query(
        get_supabase()
        .table(_TICKETS_TABLE)
        .select("*")
        .eq("purchaser", email)
        .order("purchase_datetime_utc", desc=True),
        "list tickets by purchaser",
    )
    return [_row_to_ticket(row) for row in rows]


def list_tickets(filters: Optional[TicketFilters] = None) -> List[Ticket]:
    """
    Administrative listing with optional status / date-range filters and paging.
    """

    filters = filters or TicketFilters()
    query = get_supabase().table(_TICKETS_TABLE).select("*")

    if filters.status is not None:
        query = query.eq("status", filters.status.value)
    if filters.start is not None:
        query = query.gte("purchase_datetime_utc", to_iso_utc(filters.start, name="start"))
    if filters.end is not None:
        query = query.lte("purchase_datetime_utc", to_iso_utc(filters.end, name="end"))

    query = query.order("purchase_datetime_utc", desc=True).range(
        filters.offset, filters.offset + filters.limit - 1
    )
    rows = run_query(query, "list tickets")
    return [_row_to_ticket(row) for row in rows]


def update_ticket_status(ticket_id: UUID, status: TicketStatus) -> Ticket:
    """
    Move a ticket to a new status. The only mutation tickets allow.

    Raises:
        ValueError: unknown status value
        NotFoundError: ticket missing
    """

    status = TicketStatus(status)
    rows = run_query(
        get_supabase()
        .table(_TICKETS_TABLE)
        .update({"status": status.value})
        .eq("ticket_id", str(ticket_id)),
        "update ticket status",
    )
    if not rows:
        raise NotFoundError(f"Ticket {ticket_id} not found")
    return _row_to_ticket(rows[0])


def get_sales_summary(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> SalesSummary:
    """
    Total amount and count of completed tickets, optionally within a date range.
    """

    query = (
        get_supabase()
        .table(_TICKETS_TABLE)
        .select("amount")
        .eq("status", TicketStatus.COMPLETED.value)
    )
    if start is not None:
        query = query.gte("purchase_datetime_utc", to_iso_utc(start, name="start"))
    if end is not None:
        query = query.lte("purchase_datetime_utc", to_iso_utc(end, name="end"))

    rows = run_query(query, "summarize sales")
    total = sum((parse_decimal(row["amount"], name="amount") for row in rows), Decimal("0"))
    return SalesSummary(total_sales=total, ticket_count=len(rows))


__all__ = [
    "code_exists",
    "generate_unique_code",
    "create_ticket",
    "get_ticket_by_id",
    "get_ticket_by_code",
    "list_tickets_by_user",
    "list_tickets_by_purchaser",
    "list_tickets",
    "update_ticket_status",
    "get_sales_summary",
]
