from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


@dataclass
class BookingConfirmation:
    """Snapshot handed to the email capability; built from stored line items only."""

    customer_name: str
    customer_email: str
    booking_reference: str
    tour_name: str
    tour_date: str
    total_amount: Decimal
    currency: str
    language: str
    tour_time: str | None = None
    price_breakdown: list[dict[str, Any]] = field(default_factory=list)
    upsells: list[dict[str, Any]] = field(default_factory=list)


class ConfirmationSender:
    async def send_booking_confirmation(
        self,
        confirmation: BookingConfirmation,
        voucher_url: str,
        options: dict[str, Any] | None = None,
    ) -> None:
        raise NotImplementedError
