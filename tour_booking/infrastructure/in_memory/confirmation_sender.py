from dataclasses import dataclass
from typing import Any

from tour_booking.application.interfaces.confirmation_sender import (
    BookingConfirmation,
    ConfirmationSender,
)


@dataclass
class SentConfirmation:
    confirmation: BookingConfirmation
    voucher_url: str
    options: dict[str, Any] | None


class RecordingConfirmationSender(ConfirmationSender):
    """Keeps every send in memory; set fail_with to simulate a provider outage."""

    def __init__(self) -> None:
        self.sent: list[SentConfirmation] = []
        self.fail_with: Exception | None = None

    async def send_booking_confirmation(
        self,
        confirmation: BookingConfirmation,
        voucher_url: str,
        options: dict[str, Any] | None = None,
    ) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(SentConfirmation(confirmation, voucher_url, options))
