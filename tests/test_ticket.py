"""
Tests for `domain/ticket.py`.

Covers rules:
- subtotal = unit_price * quantity and amount = sum(subtotals), both recomputed.
- Codes are 10 characters from A-Z0-9.
- Initial status is partial when anything fell short, else completed.
- Tickets are immutable; status changes produce new instances.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from domain.errors import ValidationError
from domain.ticket import (
    TICKET_CODE_ALPHABET,
    TICKET_CODE_LENGTH,
    Ticket,
    TicketFilters,
    TicketLine,
    TicketStatus,
    initial_status,
    random_ticket_code,
)

USER_ID = UUID("00000000-0000-0000-0000-000000000301")
NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _ticket(lines, **overrides) -> Ticket:
    fields = dict(
        ticket_id=UUID(int=1),
        code="ABCDE12345",
        purchase_datetime=NOW,
        purchaser="buyer@example.com",
        user_id=USER_ID,
        lines=lines,
        status=TicketStatus.COMPLETED,
    )
    fields.update(overrides)
    return Ticket(**fields)


def test_subtotal_ignores_caller_value() -> None:
    line = TicketLine(UUID(int=1), 3, Decimal("2.50"), subtotal=Decimal("999"))

    assert line.subtotal == Decimal("7.50")


def test_amount_is_sum_of_subtotals_and_not_trusted() -> None:
    lines = [
        TicketLine(UUID(int=1), 2, Decimal("10.00")),
        TicketLine(UUID(int=2), 1, Decimal("0.99")),
    ]

    ticket = _ticket(lines, amount=Decimal("1.00"))

    assert ticket.amount == Decimal("20.99")
    assert ticket.amount == sum(line.subtotal for line in ticket.lines)


def test_random_codes_use_alphabet_and_length() -> None:
    for _ in range(50):
        code = random_ticket_code()
        assert len(code) == TICKET_CODE_LENGTH
        assert set(code) <= set(TICKET_CODE_ALPHABET)


@pytest.mark.parametrize("code", ["SHORT", "abcde12345", "ABCDE-1234", "ABCDE123456"])
def test_invalid_codes_are_rejected(code: str) -> None:
    with pytest.raises(ValidationError):
        _ticket([], code=code)


def test_purchaser_must_be_email() -> None:
    with pytest.raises(ValidationError):
        _ticket([], purchaser="not-an-email")


def test_purchase_datetime_must_be_utc() -> None:
    with pytest.raises(ValidationError):
        _ticket([], purchase_datetime=datetime(2025, 1, 1))
    with pytest.raises(ValidationError):
        _ticket([], purchase_datetime=datetime(2025, 1, 1, tzinfo=timezone(timedelta(hours=2))))


def test_initial_status() -> None:
    assert initial_status(had_shortfall=True) is TicketStatus.PARTIAL
    assert initial_status(had_shortfall=False) is TicketStatus.COMPLETED


def test_ticket_is_immutable_and_status_change_copies() -> None:
    ticket = _ticket([TicketLine(UUID(int=1), 1, Decimal("5"))])

    with pytest.raises(FrozenInstanceError):
        ticket.status = TicketStatus.CANCELLED  # type: ignore[misc]

    cancelled = ticket.with_status(TicketStatus.CANCELLED)
    assert cancelled.status is TicketStatus.CANCELLED
    assert ticket.status is TicketStatus.COMPLETED
    assert cancelled.amount == ticket.amount


def test_summary() -> None:
    ticket = _ticket([TicketLine(UUID(int=1), 2, Decimal("5")), TicketLine(UUID(int=2), 1, Decimal("1"))])

    summary = ticket.summary()

    assert summary.items_count == 2
    assert summary.amount == Decimal("11")
    assert summary.code == ticket.code


def test_filters_validate_paging() -> None:
    with pytest.raises(ValidationError):
        TicketFilters(limit=0)
    with pytest.raises(ValidationError):
        TicketFilters(offset=-1)
