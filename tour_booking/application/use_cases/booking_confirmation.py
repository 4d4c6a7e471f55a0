"""Builds and dispatches the confirmation email snapshot from stored line items."""

import logging
from typing import Any

from tour_booking.application.interfaces.confirmation_sender import (
    BookingConfirmation,
    ConfirmationSender,
)
from tour_booking.domain.entities.booking import Booking

logger = logging.getLogger(__name__)


def build_voucher_url(site_url: str, booking: Booking) -> str:
    return f"{site_url.rstrip('/')}/{booking.language}/voucher/{booking.id}?token={booking.voucher_token}"


def build_confirmation(booking: Booking) -> BookingConfirmation:
    tour_item = booking.tour_item
    metadata: dict[str, Any] = (tour_item.metadata or {}) if tour_item else {}

    breakdown = metadata.get("priceBreakdown")
    if not breakdown and tour_item is not None:
        breakdown = [
            {
                "label": tour_item.name,
                "quantity": tour_item.quantity,
                "unit_price": str(tour_item.unit_retail_price_snapshot),
                "amount": str(tour_item.subtotal_retail),
            }
        ]

    return BookingConfirmation(
        customer_name=booking.customer.name,
        customer_email=booking.customer.email,
        booking_reference=booking.reference,
        tour_name=booking.tour_name,
        tour_date=booking.booking_date.isoformat(),
        total_amount=booking.total_retail,
        currency=booking.currency,
        language=booking.language,
        tour_time=metadata.get("timeSlot"),
        price_breakdown=list(breakdown or []),
        upsells=[
            {
                "title": item.name,
                "quantity": item.quantity,
                "amount": str(item.subtotal_retail),
            }
            for item in booking.upsell_items
        ],
    )


async def dispatch_confirmation(
    sender: ConfirmationSender,
    booking: Booking,
    site_url: str,
    options: dict[str, Any] | None = None,
) -> bool:
    """
    Send the confirmation email. Delivery failures are logged and reported
    through the return value; they never propagate, since the booking is
    already confirmed by the time this runs.
    """
    try:
        await sender.send_booking_confirmation(
            build_confirmation(booking),
            build_voucher_url(site_url, booking),
            options,
        )
    except Exception:
        logger.exception(
            "Failed to send booking confirmation",
            extra={"booking_id": booking.id, "booking_reference": booking.reference},
        )
        return False
    logger.info(
        "Booking confirmation sent",
        extra={"booking_id": booking.id, "booking_reference": booking.reference},
    )
    return True
