import logging

from tour_booking.api.schemas.bookings import (
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
)
from tour_booking.application.interfaces.booking_repo import BookingRepo
from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.payment_gateway import PaymentGateway
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.domain.constants import BOOKING_STATUS_PENDING_PAYMENT
from tour_booking.domain.errors import (
    BookingNotFoundError,
    InvalidBookingTransitionError,
    PaymentIssueUnresolvedError,
)
from tour_booking.domain.value_objects.money import to_minor_units

SUPPORTED_PAYMENT_METHODS = ("card", "promptpay")


def resolve_payment_method_types(enabled: list[str] | None) -> list[str]:
    methods = [m for m in (enabled or []) if m in SUPPORTED_PAYMENT_METHODS]
    return methods or ["card"]


class CreatePaymentIntentUseCase:
    def __init__(
        self,
        booking_repo: BookingRepo,
        payment_gateway: PaymentGateway,
        clock: Clock,
        transaction_manager: TransactionManager,
        publishable_key: str | None,
        payment_methods: list[str] | None = None,
        mode: str = "test",
    ) -> None:
        self._booking_repo = booking_repo
        self._payment_gateway = payment_gateway
        self._clock = clock
        self._transaction_manager = transaction_manager
        self._publishable_key = publishable_key
        self._payment_methods = resolve_payment_method_types(payment_methods)
        self._mode = mode
        self._logger = logging.getLogger(__name__)

    async def execute(self, request: CreatePaymentIntentRequest) -> CreatePaymentIntentResponse:
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(request.booking_id)
            if booking is None:
                raise BookingNotFoundError(request.booking_id)
            if booking.status != BOOKING_STATUS_PENDING_PAYMENT:
                raise InvalidBookingTransitionError(booking.status, BOOKING_STATUS_PENDING_PAYMENT)
            if booking.payment_issue:
                # Already paid once; an operator has to resolve it first.
                raise PaymentIssueUnresolvedError(booking.id, booking.payment_issue)

            # The persisted total is the amount charged; the caller's is a hint.
            if request.amount is not None and request.amount != booking.total_retail:
                self._logger.warning(
                    "Payment amount differs from booking total",
                    extra={
                        "booking_id": booking.id,
                        "requested_amount": str(request.amount),
                        "booking_total": str(booking.total_retail),
                    },
                )

            amount_minor = to_minor_units(booking.total_retail, booking.currency)
            result = await self._payment_gateway.create_intent(
                amount_minor=amount_minor,
                currency=booking.currency,
                metadata={
                    "booking_id": booking.id,
                    "booking_reference": booking.reference,
                    "tour_name": booking.tour_name,
                    "customer_name": booking.customer.name,
                    "mode": self._mode,
                },
                receipt_email=booking.customer.email,
                description=f"Booking {booking.reference} - {booking.tour_name}",
                payment_method_types=self._payment_methods,
                idempotency_key=f"pi-{booking.id}-{amount_minor}",
            )

            # Stored before the customer pays so the webhook always finds a match.
            await self._booking_repo.update_fields(
                booking.id,
                {"payment_intent_id": result.intent_id},
                updated_at=self._clock.now(),
            )

        self._logger.info(
            "Payment intent created",
            extra={
                "booking_id": booking.id,
                "booking_reference": booking.reference,
                "payment_intent_id": result.intent_id,
                "amount_minor": amount_minor,
                "currency": booking.currency,
            },
        )
        return CreatePaymentIntentResponse(
            client_secret=result.client_secret,
            intent_id=result.intent_id,
            publishable_key=self._publishable_key,
            payment_methods=self._payment_methods,
        )
