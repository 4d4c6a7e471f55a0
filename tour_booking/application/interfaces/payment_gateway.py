from dataclasses import dataclass
from typing import Any


@dataclass
class PaymentIntentResult:
    intent_id: str
    client_secret: str
    status: str


class PaymentGateway:
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
        raise NotImplementedError

    async def parse_webhook_event(
        self,
        payload: bytes,
        signature_header: str | None,
        webhook_secret: str | None,
    ) -> dict[str, Any]:
        """Verify and decode a webhook. Raises InvalidSignatureError."""
        raise NotImplementedError
