import logging
from enum import Enum
from typing import Any

from tour_booking.api.schemas.bookings import StripeWebhookEnvelope
from tour_booking.application.interfaces.availability_ledger import AvailabilityLedger
from tour_booking.application.interfaces.booking_repo import BookingRepo
from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.confirmation_sender import ConfirmationSender
from tour_booking.application.interfaces.payment_gateway import PaymentGateway
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.application.use_cases.booking_confirmation import dispatch_confirmation
from tour_booking.domain.constants import (
    BOOKING_STATUS_CANCELLED,
    BOOKING_STATUS_CONFIRMED,
    BOOKING_STATUS_PENDING_PAYMENT,
    EVENT_PAYMENT_CANCELED,
    EVENT_PAYMENT_FAILED,
    EVENT_PAYMENT_SUCCEEDED,
    PAYMENT_ISSUE_CAPACITY_EXCEEDED,
    PAYMENT_ISSUE_PAID_AFTER_CANCELLATION,
)
from tour_booking.domain.entities.booking import Booking
from tour_booking.domain.errors import (
    CapacityExceededError,
    InvalidSignatureError,
    PaymentGatewayNotConfiguredError,
)


class WebhookOutcome(str, Enum):
    CONFIRMED = "confirmed"
    CAPACITY_CONFLICT = "capacity_conflict"
    PAID_AFTER_CANCELLATION = "paid_after_cancellation"
    FAILURE_RECORDED = "failure_recorded"
    CANCELLED = "cancelled"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


class HandlePaymentWebhookUseCase:
    """
    Applies payment processor events to bookings.

    Every side effect is gated on the booking's persisted status through a
    compare-and-set transition, so a redelivered event finds the transition
    already taken and becomes a no-op.
    """

    def __init__(
        self,
        booking_repo: BookingRepo,
        availability_ledger: AvailabilityLedger,
        payment_gateway: PaymentGateway,
        confirmation_sender: ConfirmationSender,
        clock: Clock,
        transaction_manager: TransactionManager,
        webhook_secret: str | None,
        site_url: str,
    ) -> None:
        self._booking_repo = booking_repo
        self._availability_ledger = availability_ledger
        self._payment_gateway = payment_gateway
        self._confirmation_sender = confirmation_sender
        self._clock = clock
        self._transaction_manager = transaction_manager
        self._webhook_secret = webhook_secret
        self._site_url = site_url
        self._logger = logging.getLogger(__name__)

    async def execute(self, raw_body: bytes, signature: str | None) -> WebhookOutcome:
        if not raw_body:
            raise InvalidSignatureError("Empty webhook body")
        if not signature:
            raise InvalidSignatureError("Missing stripe-signature header")
        if not self._webhook_secret:
            self._logger.error("Stripe webhook secret not configured")
            raise PaymentGatewayNotConfiguredError()

        event_dict = await self._payment_gateway.parse_webhook_event(
            payload=raw_body,
            signature_header=signature,
            webhook_secret=self._webhook_secret,
        )
        try:
            event = StripeWebhookEnvelope.model_validate(event_dict)
        except ValueError as exc:
            raise InvalidSignatureError("Invalid event payload") from exc

        intent = self._extract_intent(event)
        booking_id = (intent.get("metadata") or {}).get("booking_id")
        log_extra = {
            "stripe_event_id": event.id,
            "event_type": event.type,
            "payment_intent_id": intent.get("id"),
            "booking_id": booking_id,
        }

        if event.type not in (EVENT_PAYMENT_SUCCEEDED, EVENT_PAYMENT_FAILED, EVENT_PAYMENT_CANCELED):
            self._logger.info("Ignoring unhandled Stripe event", extra=log_extra)
            return WebhookOutcome.IGNORED
        if not booking_id:
            self._logger.warning("Stripe event without booking metadata", extra=log_extra)
            return WebhookOutcome.IGNORED

        if event.type == EVENT_PAYMENT_SUCCEEDED:
            return await self._handle_succeeded(booking_id, intent, log_extra)
        if event.type == EVENT_PAYMENT_FAILED:
            return await self._handle_failed(booking_id, intent, log_extra)
        return await self._handle_canceled(booking_id, log_extra)

    async def _handle_succeeded(
        self, booking_id: str, intent: dict[str, Any], log_extra: dict[str, Any]
    ) -> WebhookOutcome:
        now = self._clock.now()
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if booking is None:
                self._logger.warning("Stripe event for unknown booking", extra=log_extra)
                return WebhookOutcome.IGNORED

            won = await self._booking_repo.transition_status(
                booking.id, BOOKING_STATUS_PENDING_PAYMENT, BOOKING_STATUS_CONFIRMED, updated_at=now
            )
            if not won:
                return await self._succeeded_without_transition(booking, log_extra)

            units = booking.capacity_committed_units
            tour_item = booking.tour_item
            if units > 0:
                # Back in pending_payment after an earlier commit; the ledger already holds it.
                self._logger.warning(
                    "Capacity already committed, not committing again",
                    extra={**log_extra, "units": units},
                )
            elif booking.availability_slot_id and tour_item is not None:
                units = tour_item.quantity
                try:
                    await self._availability_ledger.commit(booking.availability_slot_id, units)
                except CapacityExceededError:
                    # Leave it unconfirmed for manual resolution.
                    await self._booking_repo.transition_status(
                        booking.id,
                        BOOKING_STATUS_CONFIRMED,
                        BOOKING_STATUS_PENDING_PAYMENT,
                        updated_at=now,
                    )
                    await self._booking_repo.update_fields(
                        booking.id,
                        {
                            "payment_issue": PAYMENT_ISSUE_CAPACITY_EXCEEDED,
                            "payment_intent_id": intent.get("id") or booking.payment_intent_id,
                        },
                        updated_at=now,
                    )
                    self._logger.error(
                        "Capacity exceeded while confirming paid booking",
                        extra={**log_extra, "slot_id": booking.availability_slot_id, "units": units},
                    )
                    return WebhookOutcome.CAPACITY_CONFLICT

            await self._booking_repo.update_fields(
                booking.id,
                {
                    "capacity_committed_units": units,
                    "payment_intent_id": intent.get("id") or booking.payment_intent_id,
                    "payment_failure_reason": None,
                    "payment_issue": None,
                },
                updated_at=now,
            )
            booking.status = BOOKING_STATUS_CONFIRMED

        self._logger.info(
            "Stripe webhook processed: booking confirmed",
            extra={**log_extra, "booking_reference": booking.reference, "units": units},
        )
        await dispatch_confirmation(self._confirmation_sender, booking, self._site_url)
        return WebhookOutcome.CONFIRMED

    async def _succeeded_without_transition(
        self, booking: Booking, log_extra: dict[str, Any]
    ) -> WebhookOutcome:
        if booking.status == BOOKING_STATUS_CANCELLED:
            await self._booking_repo.update_fields(
                booking.id,
                {"payment_issue": PAYMENT_ISSUE_PAID_AFTER_CANCELLATION},
                updated_at=self._clock.now(),
            )
            self._logger.error("Payment succeeded for a cancelled booking", extra=log_extra)
            return WebhookOutcome.PAID_AFTER_CANCELLATION
        self._logger.info(
            "Duplicate Stripe event ignored",
            extra={**log_extra, "status": booking.status},
        )
        return WebhookOutcome.DUPLICATE

    async def _handle_failed(
        self, booking_id: str, intent: dict[str, Any], log_extra: dict[str, Any]
    ) -> WebhookOutcome:
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if booking is None:
                self._logger.warning("Stripe event for unknown booking", extra=log_extra)
                return WebhookOutcome.IGNORED
            if booking.status != BOOKING_STATUS_PENDING_PAYMENT:
                return WebhookOutcome.DUPLICATE

            last_error = intent.get("last_payment_error") or {}
            reason = last_error.get("message") or last_error.get("code") or "Payment failed"
            await self._booking_repo.update_fields(
                booking.id,
                {"payment_failure_reason": reason},
                updated_at=self._clock.now(),
            )
        self._logger.warning(
            "Stripe webhook processed: payment failed",
            extra={**log_extra, "reason": reason},
        )
        return WebhookOutcome.FAILURE_RECORDED

    async def _handle_canceled(
        self, booking_id: str, log_extra: dict[str, Any]
    ) -> WebhookOutcome:
        async with self._transaction_manager.start():
            booking = await self._booking_repo.get(booking_id)
            if booking is None:
                self._logger.warning("Stripe event for unknown booking", extra=log_extra)
                return WebhookOutcome.IGNORED
            # Nothing was committed for an unpaid booking, so nothing to release.
            won = await self._booking_repo.transition_status(
                booking.id,
                BOOKING_STATUS_PENDING_PAYMENT,
                BOOKING_STATUS_CANCELLED,
                updated_at=self._clock.now(),
            )
        if not won:
            return WebhookOutcome.DUPLICATE
        self._logger.info("Stripe webhook processed: booking cancelled", extra=log_extra)
        return WebhookOutcome.CANCELLED

    def _extract_intent(self, event: StripeWebhookEnvelope) -> dict[str, Any]:
        data_obj = event.data.get("object", {}) if isinstance(event.data, dict) else {}
        return data_obj if isinstance(data_obj, dict) else {}
