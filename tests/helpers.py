"""Builders and request helpers shared by the test modules."""

import hashlib
import hmac
import json
import time
from datetime import date, datetime, timezone
from decimal import Decimal

from fastapi.testclient import TestClient

from tour_booking.domain.entities.availability import AvailabilitySlot
from tour_booking.domain.entities.tour import Tour
from tour_booking.domain.pricing import AdultChild, FlatPerPerson, SeatBased, SeatType, Upsell

WEBHOOK_SECRET = "whsec_test_secret"
TOUR_DATE = date(2026, 12, 1)


# === Catalog ===


def make_flat_tour(tour_id: str = "tour-flat", **overrides) -> Tour:
    pricing = FlatPerPerson(
        unit_retail_price=Decimal("1500"),
        unit_net_price=Decimal("1000"),
        currency="THB",
        min_guests=1,
        max_guests=10,
    )
    fields = {
        "id": tour_id,
        "name": "Phi Phi Island Day Trip",
        "pricing": pricing,
        "upsells": [
            Upsell(
                id="ups-lunch",
                tour_id=tour_id,
                title="Seafood lunch",
                pricing_type="per_person",
                retail_price=Decimal("250"),
                net_price=Decimal("150"),
                currency="THB",
            ),
            Upsell(
                id="ups-transfer",
                tour_id=tour_id,
                title="Hotel transfer",
                pricing_type="per_booking",
                retail_price=Decimal("400"),
                net_price=Decimal("300"),
                currency="THB",
            ),
        ],
    }
    fields.update(overrides)
    return Tour(**fields)


def make_adult_child_tour(tour_id: str = "tour-family") -> Tour:
    return Tour(
        id=tour_id,
        name="Elephant Sanctuary",
        pricing=AdultChild(
            adult_retail_price=Decimal("1000"),
            adult_net_price=Decimal("700"),
            child_retail_price=Decimal("500"),
            child_net_price=Decimal("350"),
            currency="THB",
        ),
        requires_availability=False,
    )


def make_seat_tour(tour_id: str = "tour-seats") -> Tour:
    return Tour(
        id=tour_id,
        name="Sunset Cruise",
        pricing=SeatBased(
            seat_types=(
                SeatType("standard", "Standard", Decimal("900"), Decimal("600"), 4),
                SeatType("vip", "VIP", Decimal("2500"), Decimal("1800"), 2),
            ),
            currency="THB",
        ),
        requires_availability=False,
    )


def make_slot(
    slot_id: str = "slot-a",
    tour_id: str = "tour-flat",
    capacity: int = 5,
    booked: int = 3,
) -> AvailabilitySlot:
    now = datetime(2026, 10, 1, tzinfo=timezone.utc)
    return AvailabilitySlot(
        id=slot_id,
        tour_id=tour_id,
        date=TOUR_DATE,
        capacity=capacity,
        booked=booked,
        time_slot="08:30",
        created_at=now,
        updated_at=now,
    )


# === HTTP ===


def booking_payload(**overrides) -> dict:
    payload = {
        "tourId": "tour-flat",
        "availabilitySlotId": "slot-a",
        "bookingDate": TOUR_DATE.isoformat(),
        "customerName": "Jane Roe",
        "customerEmail": "jane@example.com",
        "customerPhone": "+66812345678",
        "language": "en",
        "selection": {
            "tourId": "tour-flat",
            "date": TOUR_DATE.isoformat(),
            "timeSlot": "08:30",
            "guestCounts": {"adults": 2, "children": 0},
        },
    }
    payload.update(overrides)
    return payload


def create_booking(client: TestClient, **overrides) -> dict:
    res = client.post("/api/v1/bookings", json=booking_payload(**overrides))
    assert res.status_code == 201, res.text
    return res.json()["booking"]


def create_intent(client: TestClient, booking_id: str) -> str:
    res = client.post("/api/v1/payments/intent", json={"bookingId": booking_id})
    assert res.status_code == 200, res.text
    return res.json()["intentId"]


# === Stripe webhooks ===


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header the SDK verifier accepts."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def stripe_event(
    event_type: str, booking_id: str, intent_id: str = "pi_test_123", **intent_fields
) -> str:
    intent = {"id": intent_id, "object": "payment_intent", "metadata": {"booking_id": booking_id}}
    intent.update(intent_fields)
    return json.dumps(
        {
            "id": f"evt_{intent_id}_{event_type.rsplit('.', 1)[-1]}",
            "object": "event",
            "type": event_type,
            "data": {"object": intent},
        }
    )


def post_webhook(client: TestClient, payload: str, signature: str | None = None):
    headers = {
        "Content-Type": "application/json",
        "Stripe-Signature": signature if signature is not None else sign_payload(payload),
    }
    return client.post("/api/v1/webhooks/stripe", content=payload, headers=headers)


def pay(client: TestClient, booking_id: str) -> str:
    """Create the intent and deliver a signed payment_intent.succeeded for it."""
    intent_id = create_intent(client, booking_id)
    res = post_webhook(client, stripe_event("payment_intent.succeeded", booking_id, intent_id))
    assert res.status_code == 200, res.text
    return intent_id
