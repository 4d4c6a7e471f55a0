"""
Infrastructure layer - tour booking.

Concrete adapters for the application ports.

Layout:
- db/: SQLAlchemy tables, engine, SQL repositories and deadlock retry
- gateways/: Stripe payments and Resend confirmation emails
- in_memory/: in-process adapters for development and tests
"""

# Database
from tour_booking.infrastructure.db.repositories.availability_ledger_sql import (
    AvailabilityLedgerSQL,
)
from tour_booking.infrastructure.db.repositories.booking_repo_sql import BookingRepoSQL
from tour_booking.infrastructure.db.repositories.tour_catalog_sql import TourCatalogSQL
from tour_booking.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager

# Gateways
from tour_booking.infrastructure.gateways.resend_confirmation_sender import (
    ResendConfirmationSender,
)
from tour_booking.infrastructure.gateways.stripe_gateway_real import StripeGatewayReal

# In-Memory (for testing)
from tour_booking.infrastructure.in_memory import (
    InMemoryAvailabilityLedger,
    InMemoryBookingRepo,
    InMemoryStripeGateway,
    InMemoryTourCatalog,
    InMemoryTransactionManager,
    RecordingConfirmationSender,
)

__all__ = [
    # Database - Repositories SQL
    "AvailabilityLedgerSQL",
    "BookingRepoSQL",
    "TourCatalogSQL",
    "SQLAlchemyTransactionManager",
    # Gateways
    "ResendConfirmationSender",
    "StripeGatewayReal",
    # In-Memory Implementations
    "InMemoryAvailabilityLedger",
    "InMemoryBookingRepo",
    "InMemoryStripeGateway",
    "InMemoryTourCatalog",
    "InMemoryTransactionManager",
    "RecordingConfirmationSender",
]
