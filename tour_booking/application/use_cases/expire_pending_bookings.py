import logging
from datetime import timedelta

from tour_booking.api.schemas.bookings import ExpirePendingResponse
from tour_booking.application.interfaces.booking_repo import BookingRepo
from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.domain.constants import (
    BOOKING_STATUS_CANCELLED,
    BOOKING_STATUS_PENDING_PAYMENT,
)


class ExpirePendingBookingsUseCase:
    """
    Cancels checkouts abandoned in pending_payment for longer than the TTL.

    Unpaid bookings never hold capacity, so nothing is released. A payment
    that still lands afterwards is flagged by the webhook handler instead of
    reviving the booking.
    """

    def __init__(
        self,
        booking_repo: BookingRepo,
        clock: Clock,
        transaction_manager: TransactionManager,
        ttl_minutes: int,
    ) -> None:
        self._booking_repo = booking_repo
        self._clock = clock
        self._transaction_manager = transaction_manager
        self._ttl = timedelta(minutes=ttl_minutes)
        self._logger = logging.getLogger(__name__)

    async def execute(self) -> ExpirePendingResponse:
        now = self._clock.now()
        expired: list[str] = []
        async with self._transaction_manager.start():
            stale = await self._booking_repo.list_pending_payment_before(now - self._ttl)
            for booking in stale:
                won = await self._booking_repo.transition_status(
                    booking.id,
                    BOOKING_STATUS_PENDING_PAYMENT,
                    BOOKING_STATUS_CANCELLED,
                    updated_at=now,
                )
                if won:
                    expired.append(booking.id)

        if expired:
            self._logger.info(
                "Expired abandoned bookings",
                extra={"count": len(expired), "booking_ids": expired},
            )
        return ExpirePendingResponse(expired=expired)
