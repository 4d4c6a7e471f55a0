import asyncio
import json
import logging
from typing import Any

import stripe

from tour_booking.application.interfaces.payment_gateway import (
    PaymentGateway,
    PaymentIntentResult,
)
from tour_booking.domain.errors import (
    InvalidSignatureError,
    PaymentGatewayError,
    PaymentGatewayNotConfiguredError,
)
from tour_booking.infrastructure.circuit_breaker import CircuitBreakerError, stripe_breaker

logger = logging.getLogger(__name__)


class StripeGatewayReal(PaymentGateway):
    def __init__(
        self,
        api_key: str | None,
        timeout_seconds: float = 10.0,
        max_network_retries: int = 2,
    ) -> None:
        self._api_key = api_key
        if api_key:
            stripe.api_key = api_key
        # The SDK is synchronous; bound every request so a hung call cannot pin a worker thread.
        stripe.max_network_retries = max_network_retries
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout_seconds)

    async def create_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: dict[str, str],
        receipt_email: str | None,
        description: str,
        payment_method_types: list[str],
        idempotency_key: str,
    ) -> PaymentIntentResult:
        """
        Create a PaymentIntent, protected by the Stripe circuit breaker.

        Raises:
            PaymentGatewayNotConfiguredError: no secret key configured.
            PaymentGatewayError: Stripe rejected the call or the circuit is open.
        """
        if not self._api_key:
            raise PaymentGatewayNotConfiguredError()

        params: dict[str, Any] = {
            "amount": amount_minor,
            "currency": currency.lower(),
            "payment_method_types": payment_method_types,
            "metadata": metadata,
            "description": description,
            "idempotency_key": idempotency_key,
        }
        if receipt_email:
            params["receipt_email"] = receipt_email

        try:
            intent = await asyncio.to_thread(
                stripe_breaker.call, stripe.PaymentIntent.create, **params
            )
        except CircuitBreakerError as e:
            logger.error(
                "Stripe circuit breaker is open - service unavailable",
                extra={"circuit_state": str(e), "booking_id": metadata.get("booking_id")},
            )
            raise PaymentGatewayError("Payment service temporarily unavailable") from e
        except stripe.StripeError as e:
            logger.error(
                "Stripe API error",
                exc_info=e,
                extra={"booking_id": metadata.get("booking_id")},
            )
            raise PaymentGatewayError(e.user_message or "Failed to create payment intent") from e

        return PaymentIntentResult(
            intent_id=intent.id,
            client_secret=intent.client_secret,
            status=intent.status,
        )

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict[str, Any]:
        if not webhook_secret or not signature_header:
            raise InvalidSignatureError()
        try:
            stripe.Webhook.construct_event(
                payload=payload.decode(),
                sig_header=signature_header,
                secret=webhook_secret,
            )
        except stripe.SignatureVerificationError as exc:
            raise InvalidSignatureError() from exc
        except ValueError as exc:
            raise InvalidSignatureError("Invalid webhook payload") from exc
        # Plain dicts from here on; the StripeObject wrapper adds nothing the handler needs.
        return json.loads(payload)
