import logging

from tour_booking.api.schemas.bookings import AdminBookingResponse, AdminBookingView
from tour_booking.application.interfaces.availability_ledger import AvailabilityLedger
from tour_booking.application.interfaces.booking_repo import BookingRepo
from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.domain.constants import BOOKING_STATUS_CANCELLED
from tour_booking.domain.entities.booking import Booking, can_transition
from tour_booking.domain.errors import (
    BookingNotFoundError,
    InvalidBookingTransitionError,
)

logger = logging.getLogger(__name__)


async def release_committed_capacity(
    ledger: AvailabilityLedger, booking: Booking
) -> int:
    """Give back whatever the payment webhook committed for this booking."""
    units = booking.capacity_committed_units
    if not units or not booking.availability_slot_id:
        return 0
    if not await ledger.release(booking.availability_slot_id, units):
        logger.error(
            "Capacity release refused by ledger",
            extra={
                "booking_id": booking.id,
                "slot_id": booking.availability_slot_id,
                "units": units,
            },
        )
        return 0
    return units


class CancelBookingUseCase:
    def __init__(
        self,
        booking_repo: BookingRepo,
        availability_ledger: AvailabilityLedger,
        clock: Clock,
        transaction_manager: TransactionManager,
    ) -> None:
        self._booking_repo = booking_repo
        self._availability_ledger = availability_ledger
        self._clock = clock
        self._transaction_manager = transaction_manager
        self._logger = logging.getLogger(__name__)

    async def execute(self, booking_id: str) -> AdminBookingResponse:
        now = self._clock.now()
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            if not can_transition(booking.status, BOOKING_STATUS_CANCELLED):
                raise InvalidBookingTransitionError(booking.status, BOOKING_STATUS_CANCELLED)

            won = await self._booking_repo.transition_status(
                booking.id, booking.status, BOOKING_STATUS_CANCELLED, updated_at=now
            )
            if not won:
                # Someone else moved it first; report against the fresh state.
                current = await self._booking_repo.get(booking_id)
                raise InvalidBookingTransitionError(current.status, BOOKING_STATUS_CANCELLED)

            released = await release_committed_capacity(self._availability_ledger, booking)
            if released:
                await self._booking_repo.update_fields(
                    booking.id, {"capacity_committed_units": 0}, updated_at=now
                )
            cancelled = await self._booking_repo.get(booking_id)

        self._logger.info(
            "Booking cancelled",
            extra={
                "booking_id": booking.id,
                "booking_reference": booking.reference,
                "previous_status": booking.status,
                "released_units": released,
            },
        )
        return AdminBookingResponse(booking=AdminBookingView.from_booking(cancelled))
