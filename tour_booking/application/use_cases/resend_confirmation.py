from tour_booking.application.interfaces.booking_repo import BookingRepo
from tour_booking.application.interfaces.confirmation_sender import ConfirmationSender
from tour_booking.application.use_cases.booking_confirmation import dispatch_confirmation
from tour_booking.domain.constants import BOOKING_STATUS_CONFIRMED
from tour_booking.domain.errors import (
    BookingNotConfirmedError,
    BookingNotFoundError,
    ConfirmationDeliveryError,
)


class ResendConfirmationUseCase:
    def __init__(
        self,
        booking_repo: BookingRepo,
        confirmation_sender: ConfirmationSender,
        site_url: str,
    ) -> None:
        self._booking_repo = booking_repo
        self._confirmation_sender = confirmation_sender
        self._site_url = site_url

    async def execute(self, booking_id: str) -> None:
        booking = await self._booking_repo.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        if booking.status != BOOKING_STATUS_CONFIRMED:
            raise BookingNotConfirmedError(booking.id, booking.status)
        sent = await dispatch_confirmation(
            self._confirmation_sender, booking, self._site_url, {"resend": True}
        )
        if not sent:
            raise ConfirmationDeliveryError()
