import unittest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from tour_booking.application.interfaces.confirmation_sender import BookingConfirmation
from tour_booking.infrastructure.gateways.resend_confirmation_sender import (
    RESEND_API_URL,
    ResendConfirmationSender,
    render_confirmation_html,
)


def _confirmation(**overrides) -> BookingConfirmation:
    fields = {
        "customer_name": "Jane <Roe>",
        "customer_email": "jane@example.com",
        "booking_reference": "TB-ABC123",
        "tour_name": "Phi Phi Island Day Trip",
        "tour_date": "2026-12-01",
        "tour_time": "08:30",
        "total_amount": Decimal("3500"),
        "currency": "THB",
        "language": "en",
        "price_breakdown": [{"label": "Guests", "quantity": 2, "amount": "3000.00"}],
        "upsells": [{"title": "Seafood lunch", "quantity": 2, "amount": "500.00"}],
    }
    fields.update(overrides)
    return BookingConfirmation(**fields)


def _mock_client(response):
    mock_client = AsyncMock()
    mock_client.__aenter__.return_value = mock_client
    mock_client.post.return_value = response
    return mock_client


class TestResendConfirmationSender(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.sender = ResendConfirmationSender(
            api_key="re_test_key",
            sender="Tours <bookings@example.com>",
            timeout_seconds=2.0,
            emergency_contact="+66 2 000 0000",
        )
        self.voucher_url = "https://tours.example.com/voucher/b-1?token=tok"

    @patch("httpx.AsyncClient")
    async def test_send_posts_to_resend(self, mock_client_cls):
        mock_resp = MagicMock()
        mock_resp.json.return_value = {"id": "msg_1"}
        mock_client = _mock_client(mock_resp)
        mock_client_cls.return_value = mock_client

        await self.sender.send_booking_confirmation(_confirmation(), self.voucher_url)

        mock_client_cls.assert_called_once_with(timeout=2.0)
        args, kwargs = mock_client.post.call_args
        self.assertEqual(args[0], RESEND_API_URL)
        self.assertEqual(kwargs["headers"], {"Authorization": "Bearer re_test_key"})

        payload = kwargs["json"]
        self.assertEqual(payload["from"], "Tours <bookings@example.com>")
        self.assertEqual(payload["to"], ["jane@example.com"])
        self.assertEqual(payload["subject"], "Booking confirmed: TB-ABC123")
        self.assertIn(self.voucher_url, payload["html"])
        self.assertIn("+66 2 000 0000", payload["html"])

    @patch("httpx.AsyncClient")
    async def test_subject_follows_language(self, mock_client_cls):
        mock_resp = MagicMock()
        mock_resp.json.return_value = {"id": "msg_2"}
        mock_client = _mock_client(mock_resp)
        mock_client_cls.return_value = mock_client

        await self.sender.send_booking_confirmation(
            _confirmation(language="es"), self.voucher_url
        )

        payload = mock_client.post.call_args.kwargs["json"]
        self.assertEqual(payload["subject"], "Reserva confirmada: TB-ABC123")

    @patch("httpx.AsyncClient")
    async def test_no_api_key_skips_send(self, mock_client_cls):
        sender = ResendConfirmationSender(api_key=None, sender="bookings@example.com")

        await sender.send_booking_confirmation(_confirmation(), self.voucher_url)

        mock_client_cls.assert_not_called()

    @patch("httpx.AsyncClient")
    async def test_http_error_propagates(self, mock_client_cls):
        mock_resp = MagicMock()
        mock_resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            "422 Unprocessable Entity", request=MagicMock(), response=MagicMock()
        )
        mock_client_cls.return_value = _mock_client(mock_resp)

        with self.assertRaises(httpx.HTTPStatusError):
            await self.sender.send_booking_confirmation(_confirmation(), self.voucher_url)


class TestRenderConfirmationHtml(unittest.TestCase):
    def test_escapes_customer_input(self):
        body = render_confirmation_html(_confirmation(), "https://tours.example.com/v")

        self.assertIn("Jane &lt;Roe&gt;", body)
        self.assertNotIn("<Roe>", body)

    def test_lists_lines_and_total(self):
        body = render_confirmation_html(_confirmation(), "https://tours.example.com/v")

        self.assertIn("Guests x 2", body)
        self.assertIn("Seafood lunch x 2", body)
        self.assertIn("THB 3500.00", body)
        self.assertIn("2026-12-01 08:30", body)
        self.assertNotIn("Emergency contact", body)


if __name__ == "__main__":
    unittest.main()
