"""Application ports."""

from tour_booking.application.interfaces.availability_ledger import AvailabilityLedger
from tour_booking.application.interfaces.booking_repo import UPDATABLE_FIELDS, BookingRepo
from tour_booking.application.interfaces.clock import Clock, FakeClock, SystemClock
from tour_booking.application.interfaces.confirmation_sender import (
    BookingConfirmation,
    ConfirmationSender,
)
from tour_booking.application.interfaces.payment_gateway import (
    PaymentGateway,
    PaymentIntentResult,
)
from tour_booking.application.interfaces.token_generator import (
    FakeTokenGenerator,
    RealTokenGenerator,
    TokenGenerator,
)
from tour_booking.application.interfaces.tour_catalog import TourCatalog
from tour_booking.application.interfaces.transaction_manager import TransactionManager

__all__ = [
    # Repositories
    "AvailabilityLedger",
    "BookingRepo",
    "TourCatalog",
    "UPDATABLE_FIELDS",
    # Gateways
    "BookingConfirmation",
    "ConfirmationSender",
    "PaymentGateway",
    "PaymentIntentResult",
    # Infrastructure
    "TransactionManager",
    # Utilities
    "Clock",
    "SystemClock",
    "FakeClock",
    "TokenGenerator",
    "RealTokenGenerator",
    "FakeTokenGenerator",
]
