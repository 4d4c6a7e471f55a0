"""
Application layer - tour booking.

Holds the use cases and the ports (interfaces) they depend on. Use cases
orchestrate the domain rules; infrastructure supplies the adapters.

Layout:
- use_cases/: one module per operation exposed by the API
- interfaces/: ports implemented by SQL, Stripe, email and in-memory adapters
"""

from tour_booking.application.interfaces import (
    UPDATABLE_FIELDS,
    AvailabilityLedger,
    BookingConfirmation,
    BookingRepo,
    Clock,
    ConfirmationSender,
    FakeClock,
    FakeTokenGenerator,
    PaymentGateway,
    PaymentIntentResult,
    RealTokenGenerator,
    SystemClock,
    TokenGenerator,
    TourCatalog,
    TransactionManager,
)

__all__ = [
    # Interfaces - Repositories
    "AvailabilityLedger",
    "BookingRepo",
    "TourCatalog",
    "UPDATABLE_FIELDS",
    # Interfaces - Gateways
    "BookingConfirmation",
    "ConfirmationSender",
    "PaymentGateway",
    "PaymentIntentResult",
    # Interfaces - Infrastructure
    "TransactionManager",
    # Interfaces - Utilities
    "Clock",
    "SystemClock",
    "FakeClock",
    "TokenGenerator",
    "RealTokenGenerator",
    "FakeTokenGenerator",
]
