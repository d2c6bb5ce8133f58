"""
Tests for `services/notification_service.py`.

Covers rules:
- The message lists every ticket line with its snapshotted price and the total.
- Sending without SMTP credentials fails with NotificationError.
- Dispatch never raises; a failed send is only logged.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from config import Settings
from domain.errors import NotificationError
from domain.product import Product
from domain.ticket import Ticket, TicketLine, TicketStatus
from services import notification_service
from services.notification_service import (
    dispatch_purchase_confirmation,
    render_purchase_confirmation,
    send_purchase_confirmation,
)


def _ticket() -> Ticket:
    return Ticket(
        ticket_id=UUID(int=1),
        code="ABCDE12345",
        purchase_datetime=datetime(2024, 5, 4, 15, 30, tzinfo=timezone.utc),
        purchaser="buyer@example.com",
        user_id=UUID(int=2),
        lines=(
            TicketLine(product_id=UUID(int=10), quantity=2, unit_price=Decimal("12.50")),
            TicketLine(product_id=UUID(int=11), quantity=1, unit_price=Decimal("3.00")),
        ),
        status=TicketStatus.COMPLETED,
    )


def _products():
    return {
        UUID(int=10): Product(
            product_id=UUID(int=10),
            title="Tea <Sampler>",
            code="TEA-1",
            price=Decimal("12.50"),
            stock=3,
            category="food",
        )
    }


def _settings(**overrides) -> Settings:
    values = dict(
        supabase_url=None,
        supabase_key=None,
        email_host="smtp.example.com",
        email_port=587,
        email_user=None,
        email_password=None,
        email_from=None,
        app_url="http://localhost:8000",
        log_level="INFO",
        cors_origins=("*",),
    )
    values.update(overrides)
    return Settings(**values)


def test_render_lists_lines_and_total() -> None:
    subject, text, body_html = render_purchase_confirmation(_ticket(), "Ana", _products())

    assert "ABCDE12345" in subject
    assert "Hi Ana," in text
    assert "Tea <Sampler>: 2 x $12.50 = $25.00" in text
    # unknown products fall back to their id
    assert str(UUID(int=11)) in text
    assert "Total: $28.00" in text
    assert "Tea &lt;Sampler&gt;" in body_html
    assert "2024-05-04 15:30 UTC" in body_html


def test_send_requires_credentials() -> None:
    with pytest.raises(NotificationError):
        send_purchase_confirmation("buyer@example.com", _ticket(), "Ana", _products(), settings=_settings())


def test_send_wraps_smtp_failures(monkeypatch) -> None:
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("no smtp here")

    monkeypatch.setattr(notification_service.smtplib, "SMTP", refuse)
    settings = _settings(email_user="shop@example.com", email_password="secret")

    with pytest.raises(NotificationError):
        send_purchase_confirmation("buyer@example.com", _ticket(), "Ana", _products(), settings=settings)


def test_dispatch_does_not_raise_on_failed_send() -> None:
    def failing_sender(*args):
        raise NotificationError("smtp down")

    future = dispatch_purchase_confirmation("buyer@example.com", _ticket(), "Ana", _products(), sender=failing_sender)

    assert future is not None
    assert isinstance(future.exception(timeout=5), NotificationError)


def test_dispatch_runs_sender_in_background() -> None:
    received = []

    future = dispatch_purchase_confirmation(
        "buyer@example.com", _ticket(), "Ana", _products(), sender=lambda *args: received.append(args)
    )
    future.result(timeout=5)

    assert received[0][0] == "buyer@example.com"
    assert received[0][1].code == "ABCDE12345"


def test_failed_send_is_logged(caplog) -> None:
    future: Future = Future()
    future.set_exception(NotificationError("smtp down"))

    with caplog.at_level(logging.ERROR, logger="services.notification_service"):
        notification_service._log_outcome("ABCDE12345")(future)

    assert "Purchase confirmation failed" in caplog.text
