from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.api.deps import AsyncSessionLocal
from tour_booking.application.interfaces.clock import SystemClock
from tour_booking.application.interfaces.token_generator import RealTokenGenerator
from tour_booking.application.use_cases.cancel_booking import CancelBookingUseCase
from tour_booking.application.use_cases.create_booking import CreateBookingUseCase
from tour_booking.application.use_cases.create_payment_intent import CreatePaymentIntentUseCase
from tour_booking.application.use_cases.delete_booking import DeleteBookingUseCase
from tour_booking.application.use_cases.expire_pending_bookings import (
    ExpirePendingBookingsUseCase,
)
from tour_booking.application.use_cases.get_booking import GetBookingUseCase, GetVoucherUseCase
from tour_booking.application.use_cases.handle_payment_webhook import HandlePaymentWebhookUseCase
from tour_booking.application.use_cases.manage_availability import (
    CreateSlotUseCase,
    ListOpenSlotsUseCase,
    UpdateSlotUseCase,
)
from tour_booking.application.use_cases.quote_price import QuoteTourPriceUseCase
from tour_booking.application.use_cases.resend_confirmation import ResendConfirmationUseCase
from tour_booking.application.use_cases.update_booking import UpdateBookingUseCase
from tour_booking.config import Settings, get_settings
from tour_booking.infrastructure.db.repositories.availability_ledger_sql import (
    AvailabilityLedgerSQL,
)
from tour_booking.infrastructure.db.repositories.booking_repo_sql import BookingRepoSQL
from tour_booking.infrastructure.db.repositories.tour_catalog_sql import TourCatalogSQL
from tour_booking.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from tour_booking.infrastructure.gateways.resend_confirmation_sender import (
    ResendConfirmationSender,
)
from tour_booking.infrastructure.gateways.stripe_gateway_real import StripeGatewayReal
from tour_booking.infrastructure.in_memory import (
    InMemoryAvailabilityLedger,
    InMemoryBookingRepo,
    InMemoryStripeGateway,
    InMemoryTourCatalog,
    InMemoryTransactionManager,
    RecordingConfirmationSender,
)


async def get_session(settings: Settings = Depends(get_settings)) -> AsyncSession | None:
    if settings.use_in_memory:
        yield None
        return
    async with AsyncSessionLocal() as session:
        yield session


@lru_cache(maxsize=1)
def _in_memory_bundle():
    settings = get_settings()
    return {
        "tour_catalog": InMemoryTourCatalog(),
        "booking_repo": InMemoryBookingRepo(),
        "availability_ledger": InMemoryAvailabilityLedger(),
        "stripe_gateway": InMemoryStripeGateway(),
        "confirmation_sender": RecordingConfirmationSender(),
        "tx_manager": InMemoryTransactionManager(),
        "clock": SystemClock(),
        "token_generator": RealTokenGenerator(settings.reference_prefix),
    }


def _build_use_cases(settings: Settings, adapters: dict) -> dict:
    booking_repo = adapters["booking_repo"]
    ledger = adapters["availability_ledger"]
    tour_catalog = adapters["tour_catalog"]
    clock = adapters["clock"]
    tx_manager = adapters["tx_manager"]
    return {
        "quote_price": QuoteTourPriceUseCase(tour_catalog=tour_catalog),
        "create_booking": CreateBookingUseCase(
            tour_catalog=tour_catalog,
            booking_repo=booking_repo,
            availability_ledger=ledger,
            token_generator=adapters["token_generator"],
            clock=clock,
            transaction_manager=tx_manager,
            default_language=settings.default_language,
        ),
        "create_payment_intent": CreatePaymentIntentUseCase(
            booking_repo=booking_repo,
            payment_gateway=adapters["stripe_gateway"],
            clock=clock,
            transaction_manager=tx_manager,
            publishable_key=settings.stripe_publishable_key,
            payment_methods=settings.payment_methods,
            mode=settings.stripe_mode,
        ),
        "handle_webhook": HandlePaymentWebhookUseCase(
            booking_repo=booking_repo,
            availability_ledger=ledger,
            payment_gateway=adapters["stripe_gateway"],
            confirmation_sender=adapters["confirmation_sender"],
            clock=clock,
            transaction_manager=tx_manager,
            webhook_secret=settings.stripe_webhook_secret,
            site_url=settings.site_url,
        ),
        "get_voucher": GetVoucherUseCase(booking_repo=booking_repo),
        "get_booking": GetBookingUseCase(booking_repo=booking_repo),
        "update_booking": UpdateBookingUseCase(
            booking_repo=booking_repo,
            clock=clock,
            transaction_manager=tx_manager,
        ),
        "cancel_booking": CancelBookingUseCase(
            booking_repo=booking_repo,
            availability_ledger=ledger,
            clock=clock,
            transaction_manager=tx_manager,
        ),
        "delete_booking": DeleteBookingUseCase(
            booking_repo=booking_repo,
            availability_ledger=ledger,
            transaction_manager=tx_manager,
        ),
        "resend_confirmation": ResendConfirmationUseCase(
            booking_repo=booking_repo,
            confirmation_sender=adapters["confirmation_sender"],
            site_url=settings.site_url,
        ),
        "expire_pending": ExpirePendingBookingsUseCase(
            booking_repo=booking_repo,
            clock=clock,
            transaction_manager=tx_manager,
            ttl_minutes=settings.pending_payment_ttl_minutes,
        ),
        "list_slots": ListOpenSlotsUseCase(availability_ledger=ledger),
        "create_slot": CreateSlotUseCase(
            tour_catalog=tour_catalog,
            availability_ledger=ledger,
            clock=clock,
            transaction_manager=tx_manager,
        ),
        "update_slot": UpdateSlotUseCase(
            availability_ledger=ledger,
            transaction_manager=tx_manager,
        ),
    }


def get_use_cases(
    settings: Settings = Depends(get_settings),
    session: AsyncSession | None = Depends(get_session),
):
    if settings.use_in_memory:
        return _build_use_cases(settings, _in_memory_bundle())

    if not session:
        raise RuntimeError("DB session not available")

    adapters = {
        "tour_catalog": TourCatalogSQL(session),
        "booking_repo": BookingRepoSQL(session),
        "availability_ledger": AvailabilityLedgerSQL(session),
        "stripe_gateway": StripeGatewayReal(
            api_key=settings.stripe_api_key,
            timeout_seconds=settings.stripe_timeout_seconds,
            max_network_retries=settings.stripe_max_network_retries,
        ),
        "confirmation_sender": ResendConfirmationSender(
            api_key=settings.resend_api_key,
            sender=settings.email_from,
            timeout_seconds=settings.email_timeout_seconds,
            emergency_contact=settings.emergency_contact,
        ),
        "tx_manager": SQLAlchemyTransactionManager(session),
        "clock": SystemClock(),
        "token_generator": RealTokenGenerator(settings.reference_prefix),
    }
    return _build_use_cases(settings, adapters)
