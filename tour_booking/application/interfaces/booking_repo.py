from datetime import datetime
from typing import Any, Mapping, Sequence

from tour_booking.domain.entities.booking import Booking, BookingItem

# Columns an update may touch; line items go through replace_items.
UPDATABLE_FIELDS = frozenset(
    {
        "customer_name",
        "customer_email",
        "customer_phone",
        "customer_nationality",
        "booking_date",
        "notes",
        "status",
        "payment_intent_id",
        "payment_failure_reason",
        "payment_issue",
        "capacity_committed_units",
    }
)


class BookingRepo:
    async def get(self, booking_id: str) -> Booking | None:
        raise NotImplementedError

    async def get_by_reference(self, reference: str) -> Booking | None:
        raise NotImplementedError

    async def create(self, booking: Booking) -> None:
        """Persist booking and items. Raises BookingReferenceCollisionError on a duplicate reference."""
        raise NotImplementedError

    async def transition_status(
        self,
        booking_id: str,
        from_status: str,
        to_status: str,
        updated_at: datetime | None = None,
    ) -> bool:
        """Compare-and-set the status. Returns False when the booking was not in from_status."""
        raise NotImplementedError

    async def update_fields(
        self,
        booking_id: str,
        changes: Mapping[str, Any],
        updated_at: datetime | None = None,
    ) -> None:
        raise NotImplementedError

    async def replace_items(
        self,
        booking_id: str,
        items: Sequence[BookingItem],
        updated_at: datetime | None = None,
    ) -> None:
        """Delete every line item and insert the new ones, recalculating totals."""
        raise NotImplementedError

    async def delete(self, booking_id: str) -> None:
        raise NotImplementedError

    async def list_pending_payment_before(self, created_before: datetime) -> list[Booking]:
        """Unpaid checkouts only; bookings flagged with a payment issue are skipped."""
        raise NotImplementedError
