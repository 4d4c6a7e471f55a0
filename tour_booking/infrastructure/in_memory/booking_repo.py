"""In-memory BookingRepo. Bookings are deep-copied in and out, like rows."""

import copy
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Sequence

from tour_booking.application.interfaces.booking_repo import UPDATABLE_FIELDS, BookingRepo
from tour_booking.domain.constants import BOOKING_STATUS_PENDING_PAYMENT
from tour_booking.domain.entities.booking import Booking, BookingItem
from tour_booking.domain.errors import BookingReferenceCollisionError

CUSTOMER_FIELDS = {
    "customer_name": "name",
    "customer_email": "email",
    "customer_phone": "phone",
    "customer_nationality": "nationality",
}


class InMemoryBookingRepo(BookingRepo):
    def __init__(self) -> None:
        self.bookings: dict[str, Booking] = {}
        self._next_item_id = 1

    def _assign_item_ids(self, items: Sequence[BookingItem]) -> list[BookingItem]:
        stored = copy.deepcopy(list(items))
        for item in stored:
            item.id = self._next_item_id
            self._next_item_id += 1
        return stored

    async def get(self, booking_id: str) -> Booking | None:
        booking = self.bookings.get(booking_id)
        return copy.deepcopy(booking) if booking else None

    async def get_by_reference(self, reference: str) -> Booking | None:
        for booking in self.bookings.values():
            if booking.reference == reference:
                return copy.deepcopy(booking)
        return None

    async def create(self, booking: Booking) -> None:
        if any(b.reference == booking.reference for b in self.bookings.values()):
            raise BookingReferenceCollisionError(booking.reference)
        if booking.id in self.bookings:
            raise ValueError(f"Booking already exists: {booking.id}")
        stored = copy.deepcopy(booking)
        stored.items = self._assign_item_ids(booking.items)
        self.bookings[booking.id] = stored

    async def transition_status(
        self,
        booking_id: str,
        from_status: str,
        to_status: str,
        updated_at: datetime | None = None,
    ) -> bool:
        # No await between the check and the write, so this is atomic on the event loop.
        booking = self.bookings.get(booking_id)
        if booking is None or booking.status != from_status:
            return False
        booking.status = to_status
        if updated_at is not None:
            booking.updated_at = updated_at
        return True

    async def update_fields(
        self,
        booking_id: str,
        changes: Mapping[str, Any],
        updated_at: datetime | None = None,
    ) -> None:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")
        booking = self.bookings.get(booking_id)
        if booking is None:
            return
        for key, value in changes.items():
            if key in CUSTOMER_FIELDS:
                setattr(booking.customer, CUSTOMER_FIELDS[key], value)
            else:
                setattr(booking, key, value)
        if updated_at is not None:
            booking.updated_at = updated_at

    async def replace_items(
        self,
        booking_id: str,
        items: Sequence[BookingItem],
        updated_at: datetime | None = None,
    ) -> None:
        booking = self.bookings.get(booking_id)
        if booking is None:
            return
        booking.items = self._assign_item_ids(items)
        booking.total_retail = sum((i.subtotal_retail for i in items), Decimal("0"))
        booking.total_net = sum((i.subtotal_net for i in items), Decimal("0"))
        if updated_at is not None:
            booking.updated_at = updated_at

    async def delete(self, booking_id: str) -> None:
        self.bookings.pop(booking_id, None)

    async def list_pending_payment_before(self, created_before: datetime) -> list[Booking]:
        return [
            copy.deepcopy(b)
            for b in sorted(self.bookings.values(), key=lambda b: b.created_at)
            if b.status == BOOKING_STATUS_PENDING_PAYMENT
            and b.payment_issue is None
            and b.created_at < created_before
        ]
