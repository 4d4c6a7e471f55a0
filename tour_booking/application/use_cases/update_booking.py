import logging
from typing import Any

from tour_booking.api.schemas.bookings import (
    AdminBookingResponse,
    AdminBookingView,
    UpdateBookingRequest,
)
from tour_booking.application.interfaces.booking_repo import BookingRepo
from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.application.use_cases.create_booking import require_value, validate_email
from tour_booking.domain.constants import BOOKING_STATUS_PENDING, BOOKING_STATUS_PENDING_PAYMENT
from tour_booking.domain.entities.booking import BookingItem
from tour_booking.domain.errors import BookingNotFoundError, InvalidBookingTransitionError

# Request attribute -> persisted column.
PATCHABLE_FIELDS = {
    "booking_date": "booking_date",
    "customer_name": "customer_name",
    "customer_email": "customer_email",
    "customer_phone": "customer_phone",
    "customer_nationality": "customer_nationality",
    "notes": "notes",
}

REQUIRED_PATCH_FIELDS = ("booking_date", "customer_name", "customer_email")

# Statuses that mean "nothing committed yet".
UNPAID_STATUSES = (BOOKING_STATUS_PENDING, BOOKING_STATUS_PENDING_PAYMENT)


class UpdateBookingUseCase:
    """
    Operator corrections. A status set here is an override: it skips the
    state machine and never touches committed capacity, so a booking that
    holds capacity cannot be put back into an unpaid status.
    """

    def __init__(
        self,
        booking_repo: BookingRepo,
        clock: Clock,
        transaction_manager: TransactionManager,
    ) -> None:
        self._booking_repo = booking_repo
        self._clock = clock
        self._transaction_manager = transaction_manager
        self._logger = logging.getLogger(__name__)

    async def execute(
        self, booking_id: str, request: UpdateBookingRequest
    ) -> AdminBookingResponse:
        provided = request.model_fields_set
        changes: dict[str, Any] = {
            column: getattr(request, attr)
            for attr, column in PATCHABLE_FIELDS.items()
            if attr in provided
        }
        for attr in REQUIRED_PATCH_FIELDS:
            if attr in changes:
                require_value(attr, changes[attr])
        if "customer_email" in changes:
            changes["customer_email"] = validate_email(changes["customer_email"])
        if "customer_name" in changes:
            changes["customer_name"] = changes["customer_name"].strip()
        if "status" in provided and request.status is not None:
            changes["status"] = request.status.value

        now = self._clock.now()
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            if (
                changes.get("status") in UNPAID_STATUSES
                and booking.capacity_committed_units > 0
            ):
                raise InvalidBookingTransitionError(booking.status, changes["status"])

            if changes:
                await self._booking_repo.update_fields(booking_id, changes, updated_at=now)
            if request.items is not None:
                items = [
                    BookingItem.snapshot(
                        item_type=item.item_type,
                        item_id=item.item_id,
                        name=item.name,
                        quantity=item.quantity,
                        unit_retail_price=item.unit_retail_price_snapshot,
                        unit_net_price=item.unit_net_price_snapshot,
                        metadata=item.metadata,
                    )
                    for item in request.items
                ]
                await self._booking_repo.replace_items(booking_id, items, updated_at=now)

            updated = await self._booking_repo.get(booking_id)

        self._logger.info(
            "Booking updated by operator",
            extra={
                "booking_id": booking_id,
                "fields": sorted(changes),
                "items_replaced": request.items is not None,
            },
        )
        return AdminBookingResponse(booking=AdminBookingView.from_booking(updated))
