import json
import unittest
from unittest.mock import MagicMock, patch

import stripe

from helpers import sign_payload
from tour_booking.domain.errors import (
    InvalidSignatureError,
    PaymentGatewayError,
    PaymentGatewayNotConfiguredError,
)
from tour_booking.infrastructure.circuit_breaker import stripe_breaker
from tour_booking.infrastructure.gateways.stripe_gateway_real import StripeGatewayReal

SECRET = "whsec_unit"


class TestStripeGatewayReal(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        stripe_breaker.close()
        self.gateway = StripeGatewayReal(api_key="sk_test_unit", timeout_seconds=3.0)
        self.intent_kwargs = {
            "amount_minor": 300000,
            "currency": "THB",
            "metadata": {"booking_id": "b-1", "booking_reference": "TB-ABC123"},
            "receipt_email": "jane@example.com",
            "description": "Booking TB-ABC123 - Phi Phi Island Day Trip",
            "payment_method_types": ["card", "promptpay"],
            "idempotency_key": "pi-b-1-300000",
        }

    def tearDown(self):
        stripe_breaker.close()

    @patch("stripe.PaymentIntent.create")
    async def test_create_intent_success(self, mock_create):
        mock_create.return_value = MagicMock(
            id="pi_unit_1", client_secret="pi_unit_1_secret_x", status="requires_payment_method"
        )

        result = await self.gateway.create_intent(**self.intent_kwargs)

        self.assertEqual(result.intent_id, "pi_unit_1")
        self.assertEqual(result.client_secret, "pi_unit_1_secret_x")
        self.assertEqual(result.status, "requires_payment_method")

        params = mock_create.call_args.kwargs
        self.assertEqual(params["amount"], 300000)
        self.assertEqual(params["currency"], "thb")
        self.assertEqual(params["idempotency_key"], "pi-b-1-300000")
        self.assertEqual(params["receipt_email"], "jane@example.com")
        self.assertEqual(params["payment_method_types"], ["card", "promptpay"])
        self.assertEqual(params["metadata"]["booking_id"], "b-1")

    @patch("stripe.PaymentIntent.create")
    async def test_receipt_email_omitted_when_missing(self, mock_create):
        mock_create.return_value = MagicMock(id="pi_2", client_secret="s", status="requires_payment_method")
        self.intent_kwargs["receipt_email"] = None

        await self.gateway.create_intent(**self.intent_kwargs)

        self.assertNotIn("receipt_email", mock_create.call_args.kwargs)

    @patch("stripe.PaymentIntent.create")
    async def test_stripe_error_maps_to_gateway_error(self, mock_create):
        mock_create.side_effect = stripe.StripeError("Your card was declined")

        with self.assertRaises(PaymentGatewayError) as ctx:
            await self.gateway.create_intent(**self.intent_kwargs)

        self.assertEqual(ctx.exception.status_code, 502)
        self.assertIn("declined", ctx.exception.message)

    @patch("stripe.PaymentIntent.create")
    async def test_open_circuit_fails_fast(self, mock_create):
        mock_create.side_effect = stripe.StripeError("upstream down")

        for _ in range(stripe_breaker.fail_max):
            with self.assertRaises(PaymentGatewayError):
                await self.gateway.create_intent(**self.intent_kwargs)

        with self.assertRaises(PaymentGatewayError) as ctx:
            await self.gateway.create_intent(**self.intent_kwargs)

        self.assertEqual(ctx.exception.message, "Payment service temporarily unavailable")
        self.assertEqual(mock_create.call_count, stripe_breaker.fail_max)

    @patch("stripe.PaymentIntent.create")
    async def test_missing_api_key(self, mock_create):
        gateway = StripeGatewayReal(api_key=None)

        with self.assertRaises(PaymentGatewayNotConfiguredError):
            await gateway.create_intent(**self.intent_kwargs)

        mock_create.assert_not_called()

    async def test_parse_webhook_event_valid_signature(self):
        payload = json.dumps({"id": "evt_1", "object": "event", "type": "payment_intent.succeeded"})

        event = await self.gateway.parse_webhook_event(
            payload.encode(), sign_payload(payload, secret=SECRET), SECRET
        )

        self.assertEqual(event["type"], "payment_intent.succeeded")
        self.assertIsInstance(event, dict)

    async def test_parse_webhook_event_bad_signature(self):
        payload = json.dumps({"id": "evt_1", "object": "event", "type": "payment_intent.succeeded"})

        with self.assertRaises(InvalidSignatureError):
            await self.gateway.parse_webhook_event(
                payload.encode(), sign_payload(payload, secret="whsec_other"), SECRET
            )

    async def test_parse_webhook_event_without_secret(self):
        payload = json.dumps({"id": "evt_1", "object": "event"})

        with self.assertRaises(InvalidSignatureError):
            await self.gateway.parse_webhook_event(
                payload.encode(), sign_payload(payload, secret=SECRET), None
            )


if __name__ == "__main__":
    unittest.main()
