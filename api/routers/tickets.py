"""
Tickets API Endpoints.

Read access to purchase records plus the administrative status transition.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_current_user, http_error, require_admin
from api.models import SalesSummaryResponse, TicketResponse, TicketStatusUpdateRequest
from domain.errors import CheckoutError
from domain.ticket import TicketFilters, TicketStatus
from domain.time import as_utc
from domain.user import User
from repositories.ticket_repository import get_sales_summary, update_ticket_status
from services.purchase_service import get_all_tickets, get_ticket, get_user_tickets

router = APIRouter()


@router.get(
    "/tickets/user/my-tickets",
    response_model=List[TicketResponse],
    summary="My Tickets",
    description="The caller's tickets, newest first."
)
def my_tickets(user: User = Depends(get_current_user)):
    try:
        return [TicketResponse.from_domain(t) for t in get_user_tickets(user.user_id)]
    except CheckoutError as e:
        raise http_error(e)


@router.get(
    "/tickets/summary/sales",
    response_model=SalesSummaryResponse,
    summary="Sales Summary",
    description="Total amount and count of completed tickets (admin only)."
)
def sales_summary(
    start: Optional[datetime] = Query(None, description="Inclusive lower bound (UTC)"),
    end: Optional[datetime] = Query(None, description="Inclusive upper bound (UTC)"),
    _admin: User = Depends(require_admin),
):
    try:
        return SalesSummaryResponse.from_domain(get_sales_summary(as_utc(start), as_utc(end)))
    except CheckoutError as e:
        raise http_error(e)


@router.get(
    "/tickets/{ticket_id}",
    response_model=TicketResponse,
    summary="Get Ticket",
)
def read_ticket(ticket_id: UUID, user: User = Depends(get_current_user)):
    """
    **Authorization:**
    Only the purchaser or an admin can read a ticket.
    """
    try:
        ticket = get_ticket(ticket_id)
    except CheckoutError as e:
        raise http_error(e)

    if ticket is None:
        raise HTTPException(status_code=404, detail=f"Ticket not found: {ticket_id}")
    if ticket.user_id != user.user_id and not user.is_admin():
        raise HTTPException(status_code=403, detail="Not authorized to view this ticket")
    return TicketResponse.from_domain(ticket)


@router.get(
    "/tickets",
    response_model=List[TicketResponse],
    summary="List Tickets",
    description="All tickets with optional filters (admin only)."
)
def list_all_tickets(
    status: Optional[TicketStatus] = Query(None, description="Filter by status"),
    start: Optional[datetime] = Query(None, description="Purchased at or after (UTC)"),
    end: Optional[datetime] = Query(None, description="Purchased at or before (UTC)"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of results to return"),
    offset: int = Query(0, ge=0),
    _admin: User = Depends(require_admin),
):
    filters = TicketFilters(status=status, start=as_utc(start), end=as_utc(end), limit=limit, offset=offset)
    try:
        return [TicketResponse.from_domain(t) for t in get_all_tickets(filters)]
    except CheckoutError as e:
        raise http_error(e)


@router.patch(
    "/tickets/{ticket_id}/status",
    response_model=TicketResponse,
    summary="Update Ticket Status",
    description="Administrative status transition; the only change a ticket accepts."
)
def change_ticket_status(
    ticket_id: UUID,
    request: TicketStatusUpdateRequest,
    _admin: User = Depends(require_admin),
):
    try:
        return TicketResponse.from_domain(update_ticket_status(ticket_id, request.status))
    except CheckoutError as e:
        raise http_error(e)
