import json
from typing import Any
from uuid import uuid4

import stripe

from tour_booking.application.interfaces.payment_gateway import (
    PaymentGateway,
    PaymentIntentResult,
)
from tour_booking.domain.errors import InvalidSignatureError


class StubStripeGateway(PaymentGateway):
    """
    Offline stand-in for Stripe. Intents are fabricated locally, but webhook
    signatures are still checked with the SDK's own verifier so signed test
    payloads behave exactly as they would against the real endpoint.
    """

    def __init__(self) -> None:
        self.created_intents: list[dict[str, Any]] = []
        self._by_idempotency_key: dict[str, PaymentIntentResult] = {}

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
        if idempotency_key in self._by_idempotency_key:
            return self._by_idempotency_key[idempotency_key]
        intent_id = f"pi_{uuid4().hex[:14]}"
        result = PaymentIntentResult(
            intent_id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid4().hex[:10]}",
            status="requires_payment_method",
        )
        self.created_intents.append(
            {
                "id": intent_id,
                "amount": amount_minor,
                "currency": currency.lower(),
                "metadata": dict(metadata),
                "receipt_email": receipt_email,
                "description": description,
                "payment_method_types": list(payment_method_types),
            }
        )
        self._by_idempotency_key[idempotency_key] = result
        return result

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict[str, Any]:
        if not webhook_secret or not signature_header:
            raise InvalidSignatureError()
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode(), signature_header, webhook_secret
            )
        except stripe.SignatureVerificationError as exc:
            raise InvalidSignatureError() from exc
        try:
            return json.loads(payload)
        except json.JSONDecodeError as exc:
            raise InvalidSignatureError("Invalid webhook payload") from exc
