from datetime import datetime, timezone

import pytest

from helpers import create_booking, create_intent, pay, post_webhook, stripe_event
from tour_booking.application.interfaces.clock import FakeClock

EXPIRE_URL = "/api/v1/admin/bookings/expire-pending"


@pytest.fixture
def clock(bundle):
    fake = FakeClock(datetime(2026, 11, 1, 9, 0, tzinfo=timezone.utc))
    bundle["clock"] = fake
    return fake


def test_abandoned_checkout_is_expired(client, bundle, clock):
    stale = create_booking(client)
    clock.advance(minutes=61)
    fresh = create_booking(client)

    res = client.post(EXPIRE_URL)

    assert res.status_code == 200
    assert res.json()["expired"] == [stale["id"]]
    assert bundle["booking_repo"].bookings[stale["id"]].status == "cancelled"
    assert bundle["booking_repo"].bookings[fresh["id"]].status == "pending_payment"
    # nothing was ever committed for unpaid bookings
    assert bundle["availability_ledger"].slots["slot-a"].booked == 3


def test_paid_bookings_are_left_alone(client, bundle, clock):
    booking = create_booking(client)
    pay(client, booking["id"])
    clock.advance(hours=5)

    res = client.post(EXPIRE_URL)

    assert res.json()["expired"] == []
    assert bundle["booking_repo"].bookings[booking["id"]].status == "confirmed"


def test_late_payment_for_expired_booking_is_flagged(client, bundle, clock):
    booking = create_booking(client)
    intent_id = create_intent(client, booking["id"])
    clock.advance(minutes=90)
    client.post(EXPIRE_URL)

    post_webhook(client, stripe_event("payment_intent.succeeded", booking["id"], intent_id))

    stored = bundle["booking_repo"].bookings[booking["id"]]
    assert stored.status == "cancelled"
    assert stored.payment_issue == "paid_after_cancellation"
    assert bundle["availability_ledger"].slots["slot-a"].booked == 3


def test_sweep_is_idempotent(client, clock):
    create_booking(client)
    clock.advance(minutes=61)

    assert len(client.post(EXPIRE_URL).json()["expired"]) == 1
    assert client.post(EXPIRE_URL).json()["expired"] == []


def test_booking_paid_into_full_slot_is_not_expired(client, bundle, clock):
    first = create_booking(client)
    second = create_booking(client)
    second_intent = create_intent(client, second["id"])
    pay(client, first["id"])
    post_webhook(client, stripe_event("payment_intent.succeeded", second["id"], second_intent))
    clock.advance(minutes=61)

    res = client.post(EXPIRE_URL)

    assert res.json()["expired"] == []
    stored = bundle["booking_repo"].bookings[second["id"]]
    assert stored.status == "pending_payment"
    assert stored.payment_issue == "capacity_exceeded"
    assert bundle["availability_ledger"].slots["slot-a"].booked == 5
