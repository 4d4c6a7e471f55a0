"""Domain entities."""

from tour_booking.domain.entities.availability import AvailabilitySlot
from tour_booking.domain.entities.booking import (
    ALLOWED_TRANSITIONS,
    Booking,
    BookingItem,
    BookingStatus,
    Customer,
    can_transition,
)
from tour_booking.domain.entities.tour import Tour

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AvailabilitySlot",
    "Booking",
    "BookingItem",
    "BookingStatus",
    "Customer",
    "Tour",
    "can_transition",
]
