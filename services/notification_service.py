"""
Notification service for purchase confirmations.

Delivery is best-effort:
- `send_purchase_confirmation()` sends synchronously over SMTP and raises
  NotificationError on any failure.
- `dispatch_purchase_confirmation()` runs the send on a background executor and
  only logs failures; the returned future is never joined by the checkout.
"""

from __future__ import annotations

import html
import logging
import smtplib
from concurrent.futures import Future, ThreadPoolExecutor
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, Mapping, Optional
from uuid import UUID

from config import Settings, get_settings
from domain.errors import NotificationError
from domain.product import Product
from domain.ticket import Ticket

logger = logging.getLogger(__name__)

# Small pool: confirmations are I/O bound and rare compared to requests
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="notify")

Sender = Callable[[str, Ticket, str, Mapping[UUID, Product]], None]


def _line_title(product_id: UUID, products: Mapping[UUID, Product]) -> str:
    product = products.get(product_id)
    return product.title if product is not None else str(product_id)


def render_purchase_confirmation(
    ticket: Ticket,
    display_name: str,
    products: Mapping[UUID, Product],
) -> tuple[str, str, str]:
    """
    Build the confirmation message.

    Returns:
        (subject, plain-text body, HTML body)
    """

    subject = f"Purchase confirmation - Ticket {ticket.code}"
    date = ticket.purchase_datetime.strftime("%Y-%m-%d %H:%M UTC")

    text_rows = [
        f"  {_line_title(line.product_id, products)}: "
        f"{line.quantity} x ${line.unit_price:.2f} = ${line.subtotal:.2f}"
        for line in ticket.lines
    ]
    text = "\n".join(
        [
            f"Hi {display_name},",
            "",
            "Thanks for your purchase. Here is your ticket:",
            "",
            f"Code: {ticket.code}",
            f"Date: {date}",
            f"Status: {ticket.status.value}",
            "",
            *text_rows,
            "",
            f"Total: ${ticket.amount:.2f}",
        ]
    )

    html_rows = "".join(
        "<tr>"
        f"<td>{html.escape(_line_title(line.product_id, products))}</td>"
        f"<td style=\"text-align:center\">${line.unit_price:.2f}</td>"
        f"<td style=\"text-align:center\">{line.quantity}</td>"
        f"<td style=\"text-align:right\"><strong>${line.subtotal:.2f}</strong></td>"
        "</tr>"
        for line in ticket.lines
    )
    body_html = (
        "<html><body style=\"font-family: Arial, sans-serif; color: #333\">"
        f"<h2>Purchase confirmed</h2><p>Hi {html.escape(display_name)},</p>"
        "<p>Thanks for your purchase. Here is your ticket:</p>"
        f"<p><strong>Code:</strong> {ticket.code}<br>"
        f"<strong>Date:</strong> {date}<br>"
        f"<strong>Status:</strong> {ticket.status.value}</p>"
        "<table style=\"width:100%; border-collapse:collapse\">"
        "<tr><th>Product</th><th>Price</th><th>Quantity</th><th>Subtotal</th></tr>"
        f"{html_rows}</table>"
        f"<p style=\"text-align:right; font-size:18px\"><strong>Total: ${ticket.amount:.2f}</strong></p>"
        "</body></html>"
    )
    return subject, text, body_html


def send_purchase_confirmation(
    email: str,
    ticket: Ticket,
    display_name: str,
    products: Mapping[UUID, Product],
    settings: Optional[Settings] = None,
) -> None:
    """
    Send the confirmation over SMTP (STARTTLS).

    Raises:
        NotificationError: SMTP not configured or delivery failed
    """

    settings = settings or get_settings()
    if not settings.email_configured:
        raise NotificationError("Email delivery is not configured (EMAIL_USER / EMAIL_PASSWORD)")

    subject, text, body_html = render_purchase_confirmation(ticket, display_name, products)

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.email_from or settings.email_user
    msg["To"] = email
    msg.attach(MIMEText(text, "plain"))
    msg.attach(MIMEText(body_html, "html"))

    try:
        with smtplib.SMTP(settings.email_host, settings.email_port, timeout=30) as server:
            server.starttls()
            server.login(settings.email_user, settings.email_password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        raise NotificationError(f"Failed to send purchase confirmation: {e}") from e

    logger.info("Purchase confirmation sent", extra={"ticket_code": ticket.code})


def _log_outcome(ticket_code: str) -> Callable[[Future], None]:
    def _done(future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error(
                "Purchase confirmation failed",
                extra={"ticket_code": ticket_code, "error": str(error)},
            )

    return _done


def dispatch_purchase_confirmation(
    email: str,
    ticket: Ticket,
    display_name: str,
    products: Mapping[UUID, Product],
    sender: Optional[Sender] = None,
) -> Optional[Future]:
    """
    Fire-and-forget confirmation.

    Never raises: a failure to even schedule the task is logged and None is
    returned.
    """

    send = sender or send_purchase_confirmation
    try:
        future = _executor.submit(send, email, ticket, display_name, products)
    except RuntimeError as e:
        # executor already shut down (interpreter exit)
        logger.error("Could not schedule purchase confirmation", extra={"ticket_code": ticket.code, "error": str(e)})
        return None

    future.add_done_callback(_log_outcome(ticket.code))
    return future


__all__ = [
    "render_purchase_confirmation",
    "send_purchase_confirmation",
    "dispatch_purchase_confirmation",
]
