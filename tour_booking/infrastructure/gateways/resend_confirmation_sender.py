import html
import logging
from typing import Any

import httpx

from tour_booking.application.interfaces.confirmation_sender import (
    BookingConfirmation,
    ConfirmationSender,
)

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

SUBJECTS = {
    "en": "Booking confirmed: {reference}",
    "es": "Reserva confirmada: {reference}",
    "th": "ยืนยันการจอง: {reference}",
}


def render_confirmation_html(
    confirmation: BookingConfirmation,
    voucher_url: str,
    emergency_contact: str | None = None,
) -> str:
    e = html.escape
    lines = "".join(
        f"<tr><td>{e(str(line.get('label', '')))} x {e(str(line.get('quantity', '')))}</td>"
        f"<td align=\"right\">{e(str(line.get('amount', '')))}</td></tr>"
        for line in confirmation.price_breakdown
    )
    upsells = "".join(
        f"<tr><td>{e(str(u.get('title', '')))} x {e(str(u.get('quantity', '')))}</td>"
        f"<td align=\"right\">{e(str(u.get('amount', '')))}</td></tr>"
        for u in confirmation.upsells
    )
    when = confirmation.tour_date
    if confirmation.tour_time:
        when = f"{when} {confirmation.tour_time}"
    contact = (
        f"<p>Emergency contact: {e(emergency_contact)}</p>" if emergency_contact else ""
    )
    return (
        f"<h1>{e(confirmation.tour_name)}</h1>"
        f"<p>Hi {e(confirmation.customer_name)}, your booking "
        f"<strong>{e(confirmation.booking_reference)}</strong> is confirmed.</p>"
        f"<p>Date: {e(when)}</p>"
        f"<table>{lines}{upsells}"
        f"<tr><td><strong>Total</strong></td><td align=\"right\"><strong>"
        f"{e(confirmation.currency)} {confirmation.total_amount:.2f}</strong></td></tr></table>"
        f"<p><a href=\"{e(voucher_url)}\">View your voucher</a></p>"
        f"{contact}"
    )


class ResendConfirmationSender(ConfirmationSender):
    def __init__(
        self,
        api_key: str | None,
        sender: str,
        timeout_seconds: float = 5.0,
        emergency_contact: str | None = None,
    ) -> None:
        """
        Confirmation emails over the Resend HTTP API.

        Args:
            api_key: Resend API key; without it sends are skipped with a warning.
            sender: "From" address, e.g. "Tours <bookings@example.com>".
            timeout_seconds: Bound on each HTTP call.
        """
        self._api_key = api_key
        self._sender = sender
        self._timeout = timeout_seconds
        self._emergency_contact = emergency_contact

    async def send_booking_confirmation(
        self,
        confirmation: BookingConfirmation,
        voucher_url: str,
        options: dict[str, Any] | None = None,
    ) -> None:
        if not self._api_key:
            logger.warning(
                "Email sending disabled: RESEND_API_KEY not configured",
                extra={"booking_reference": confirmation.booking_reference},
            )
            return

        subject = SUBJECTS.get(confirmation.language, SUBJECTS["en"]).format(
            reference=confirmation.booking_reference
        )
        payload = {
            "from": self._sender,
            "to": [confirmation.customer_email],
            "subject": subject,
            "html": render_confirmation_html(confirmation, voucher_url, self._emergency_contact),
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(RESEND_API_URL, json=payload, headers=headers)
        # Raises httpx.HTTPStatusError; the caller decides whether that is fatal.
        response.raise_for_status()

        logger.info(
            "Confirmation email accepted by Resend",
            extra={
                "booking_reference": confirmation.booking_reference,
                "message_id": response.json().get("id"),
                "resend": bool((options or {}).get("resend")),
            },
        )
