"""In-memory adapters for local development and tests."""

from tour_booking.infrastructure.in_memory.availability_ledger import InMemoryAvailabilityLedger
from tour_booking.infrastructure.in_memory.booking_repo import InMemoryBookingRepo
from tour_booking.infrastructure.in_memory.confirmation_sender import RecordingConfirmationSender
from tour_booking.infrastructure.in_memory.stripe_gateway import StubStripeGateway as InMemoryStripeGateway
from tour_booking.infrastructure.in_memory.tour_catalog import InMemoryTourCatalog
from tour_booking.infrastructure.in_memory.transaction_manager import NoopTransactionManager as InMemoryTransactionManager

__all__ = [
    # Repositories
    "InMemoryAvailabilityLedger",
    "InMemoryBookingRepo",
    "InMemoryTourCatalog",
    # Gateways
    "InMemoryStripeGateway",
    "RecordingConfirmationSender",
    # Infrastructure
    "InMemoryTransactionManager",
]
