import logging

from tour_booking.application.interfaces.availability_ledger import AvailabilityLedger
from tour_booking.application.interfaces.booking_repo import BookingRepo
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.application.use_cases.cancel_booking import release_committed_capacity
from tour_booking.domain.errors import BookingNotFoundError


class DeleteBookingUseCase:
    def __init__(
        self,
        booking_repo: BookingRepo,
        availability_ledger: AvailabilityLedger,
        transaction_manager: TransactionManager,
    ) -> None:
        self._booking_repo = booking_repo
        self._availability_ledger = availability_ledger
        self._transaction_manager = transaction_manager
        self._logger = logging.getLogger(__name__)

    async def execute(self, booking_id: str) -> None:
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            released = await release_committed_capacity(self._availability_ledger, booking)
            await self._booking_repo.delete(booking_id)

        self._logger.info(
            "Booking deleted",
            extra={
                "booking_id": booking.id,
                "booking_reference": booking.reference,
                "released_units": released,
            },
        )
