import secrets

from tour_booking.api.schemas.bookings import (
    AdminBookingResponse,
    AdminBookingView,
    VoucherResponse,
)
from tour_booking.application.interfaces.booking_repo import BookingRepo
from tour_booking.domain.errors import BookingNotFoundError


class GetBookingUseCase:
    def __init__(self, booking_repo: BookingRepo) -> None:
        self._booking_repo = booking_repo

    async def execute(self, booking_id: str) -> AdminBookingResponse:
        booking = await self._booking_repo.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return AdminBookingResponse(booking=AdminBookingView.from_booking(booking))


class GetVoucherUseCase:
    """Voucher access is granted by the token alone; a wrong token looks like a missing booking."""

    def __init__(self, booking_repo: BookingRepo) -> None:
        self._booking_repo = booking_repo

    async def execute(self, booking_id: str, token: str | None) -> VoucherResponse:
        booking = await self._booking_repo.get(booking_id)
        if (
            booking is None
            or not token
            or not secrets.compare_digest(booking.voucher_token.encode(), token.encode())
        ):
            raise BookingNotFoundError(booking_id)
        return VoucherResponse.from_booking(booking)
