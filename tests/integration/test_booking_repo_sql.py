"""
SQL adapters end to end on SQLite: the booking repository, the tour catalog
and the full create, pay and confirm flow through SQLAlchemyTransactionManager.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from helpers import (
    TOUR_DATE,
    WEBHOOK_SECRET,
    booking_payload,
    make_flat_tour,
    make_slot,
    sign_payload,
    stripe_event,
)
from tour_booking.api.dependencies import _build_use_cases
from tour_booking.api.schemas.bookings import CreateBookingRequest, CreatePaymentIntentRequest
from tour_booking.application.interfaces.clock import SystemClock
from tour_booking.application.interfaces.token_generator import FakeTokenGenerator
from tour_booking.application.use_cases.handle_payment_webhook import WebhookOutcome
from tour_booking.config import get_settings
from tour_booking.domain.constants import ITEM_TYPE_TOUR, ITEM_TYPE_UPSELL
from tour_booking.domain.entities.booking import Booking, BookingItem, Customer
from tour_booking.domain.errors import BookingReferenceCollisionError
from tour_booking.infrastructure.db.repositories.availability_ledger_sql import (
    AvailabilityLedgerSQL,
)
from tour_booking.infrastructure.db.repositories.booking_repo_sql import BookingRepoSQL
from tour_booking.infrastructure.db.repositories.tour_catalog_sql import TourCatalogSQL
from tour_booking.infrastructure.db.transaction_manager import SQLAlchemyTransactionManager
from tour_booking.infrastructure.in_memory import (
    InMemoryStripeGateway,
    RecordingConfirmationSender,
)

pytestmark = pytest.mark.integration

CREATED_AT = datetime(2026, 11, 1, 9, 0, tzinfo=timezone.utc)


def _booking(booking_id: str = "b-1", reference: str = "TB-AAAA2222", **overrides) -> Booking:
    fields = {
        "id": booking_id,
        "reference": reference,
        "tour_id": "tour-flat",
        "status": "pending_payment",
        "customer": Customer(name="Jane Roe", email="jane@example.com", phone="+66812345678"),
        "booking_date": TOUR_DATE,
        "language": "en",
        "currency": "THB",
        "voucher_token": f"voucher-{booking_id}",
        "items": [
            BookingItem.snapshot("tour", "tour-flat", "Phi Phi Island Day Trip", 2,
                                 Decimal("1500"), Decimal("1000"),
                                 metadata={"pricingType": "flat_per_person"}),
            BookingItem.snapshot("upsell", "ups-lunch", "Seafood lunch", 2,
                                 Decimal("250"), Decimal("150")),
        ],
        "availability_slot_id": "slot-a",
        "created_at": CREATED_AT,
        "updated_at": CREATED_AT,
    }
    fields.update(overrides)
    booking = Booking(**fields)
    booking.recalculate_totals()
    return booking


class TestBookingRepoSQL:
    @pytest.mark.asyncio
    async def test_create_and_get_with_items(self, db_session):
        repo = BookingRepoSQL(db_session)
        async with db_session.begin():
            await repo.create(_booking())

        loaded = await repo.get("b-1")
        assert loaded.reference == "TB-AAAA2222"
        assert loaded.total_retail == Decimal("3500")
        assert loaded.total_net == Decimal("2300")
        assert [item.item_type for item in loaded.items] == [ITEM_TYPE_TOUR, ITEM_TYPE_UPSELL]
        assert loaded.tour_item.unit_retail_price_snapshot == Decimal("1500")
        assert loaded.tour_item.metadata == {"pricingType": "flat_per_person"}
        assert loaded.customer.phone == "+66812345678"
        assert (await repo.get_by_reference("TB-AAAA2222")).id == "b-1"
        assert await repo.get("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_reference_is_a_collision(self, db_session):
        repo = BookingRepoSQL(db_session)
        async with db_session.begin():
            await repo.create(_booking())
            with pytest.raises(BookingReferenceCollisionError):
                await repo.create(_booking(booking_id="b-2", voucher_token="voucher-b-2"))

    @pytest.mark.asyncio
    async def test_transition_status_is_compare_and_set(self, db_session):
        repo = BookingRepoSQL(db_session)
        async with db_session.begin():
            await repo.create(_booking())
            assert await repo.transition_status("b-1", "pending_payment", "confirmed") is True
            # second delivery finds the status already moved
            assert await repo.transition_status("b-1", "pending_payment", "confirmed") is False

        assert (await repo.get("b-1")).status == "confirmed"

    @pytest.mark.asyncio
    async def test_update_fields(self, db_session):
        repo = BookingRepoSQL(db_session)
        later = CREATED_AT + timedelta(hours=1)
        async with db_session.begin():
            await repo.create(_booking())
            await repo.update_fields(
                "b-1", {"notes": "Vegetarian", "payment_intent_id": "pi_1"}, updated_at=later
            )
            with pytest.raises(ValueError):
                await repo.update_fields("b-1", {"total_retail": Decimal("1")})

        loaded = await repo.get("b-1")
        assert loaded.notes == "Vegetarian"
        assert loaded.payment_intent_id == "pi_1"
        assert loaded.updated_at.replace(tzinfo=None) == later.replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_replace_items_recomputes_totals(self, db_session):
        repo = BookingRepoSQL(db_session)
        async with db_session.begin():
            await repo.create(_booking())
            await repo.replace_items(
                "b-1",
                [BookingItem.snapshot("tour", "tour-flat", "Phi Phi Island Day Trip", 3,
                                      Decimal("1500"), Decimal("1000"))],
            )

        loaded = await repo.get("b-1")
        assert len(loaded.items) == 1
        assert loaded.total_retail == Decimal("4500")
        assert loaded.total_net == Decimal("3000")

    @pytest.mark.asyncio
    async def test_delete_removes_booking_and_items(self, db_session):
        repo = BookingRepoSQL(db_session)
        async with db_session.begin():
            await repo.create(_booking())
            await repo.delete("b-1")

        assert await repo.get("b-1") is None

    @pytest.mark.asyncio
    async def test_list_pending_payment_before(self, db_session):
        repo = BookingRepoSQL(db_session)
        async with db_session.begin():
            await repo.create(_booking())
            await repo.create(
                _booking(
                    "b-2",
                    "TB-BBBB3333",
                    created_at=CREATED_AT + timedelta(hours=2),
                    updated_at=CREATED_AT + timedelta(hours=2),
                )
            )
            await repo.create(_booking("b-3", "TB-CCCC4444", status="confirmed"))
            await repo.create(
                _booking("b-4", "TB-DDDD5555", payment_issue="capacity_exceeded")
            )

        stale = await repo.list_pending_payment_before(CREATED_AT + timedelta(hours=1))
        assert [b.id for b in stale] == ["b-1"]


class TestTourCatalogSQL:
    @pytest.mark.asyncio
    async def test_save_and_load_tour(self, db_session):
        catalog = TourCatalogSQL(db_session)
        tour = make_flat_tour()
        tour.upsells[1] = replace(tour.upsells[1], active=False)
        async with db_session.begin():
            await catalog.save_tour(tour)

        loaded = await catalog.get_tour("tour-flat")
        assert loaded.pricing == tour.pricing
        assert loaded.currency == "THB"
        assert [u.id for u in loaded.upsells] == ["ups-lunch"]
        assert loaded.upsells[0].retail_price == Decimal("250")
        assert await catalog.get_tour("missing") is None

    @pytest.mark.asyncio
    async def test_save_replaces_existing_tour(self, db_session):
        catalog = TourCatalogSQL(db_session)
        async with db_session.begin():
            await catalog.save_tour(make_flat_tour())
            await catalog.save_tour(make_flat_tour(name="Phi Phi by Speedboat", upsells=[]))

        loaded = await catalog.get_tour("tour-flat")
        assert loaded.name == "Phi Phi by Speedboat"
        assert loaded.upsells == []


class TestSQLBookingFlow:
    """Create, pay and confirm against the SQL adapters in one session."""

    @pytest.fixture
    def adapters(self, db_session):
        return {
            "tour_catalog": TourCatalogSQL(db_session),
            "booking_repo": BookingRepoSQL(db_session),
            "availability_ledger": AvailabilityLedgerSQL(db_session),
            "stripe_gateway": InMemoryStripeGateway(),
            "confirmation_sender": RecordingConfirmationSender(),
            "tx_manager": SQLAlchemyTransactionManager(db_session),
            "clock": SystemClock(),
            "token_generator": FakeTokenGenerator("TB"),
        }

    @pytest.fixture
    def use_cases(self, adapters):
        get_settings.cache_clear()
        yield _build_use_cases(get_settings(), adapters)
        get_settings.cache_clear()

    async def _seed(self, db_session):
        async with db_session.begin():
            await TourCatalogSQL(db_session).save_tour(make_flat_tour())
            await AvailabilityLedgerSQL(db_session).create_slot(make_slot())

    @pytest.mark.asyncio
    async def test_paid_booking_commits_capacity_once(self, db_session, adapters, use_cases):
        await self._seed(db_session)

        created = await use_cases["create_booking"].execute(
            CreateBookingRequest.model_validate(booking_payload())
        )
        assert created.booking.status == "pending_payment"
        # capacity is untouched until payment
        assert (await adapters["availability_ledger"].get_slot("slot-a")).booked == 3

        intent = await use_cases["create_payment_intent"].execute(
            CreatePaymentIntentRequest(booking_id=created.booking.id)
        )
        payload = stripe_event("payment_intent.succeeded", created.booking.id, intent.intent_id)
        webhook = use_cases["handle_webhook"]

        first = await webhook.execute(payload.encode(), sign_payload(payload, WEBHOOK_SECRET))
        second = await webhook.execute(payload.encode(), sign_payload(payload, WEBHOOK_SECRET))

        assert first == WebhookOutcome.CONFIRMED
        assert second == WebhookOutcome.DUPLICATE
        assert (await adapters["availability_ledger"].get_slot("slot-a")).booked == 5

        booking = await adapters["booking_repo"].get(created.booking.id)
        assert booking.status == "confirmed"
        assert booking.capacity_committed_units == 2
        assert booking.payment_intent_id == intent.intent_id
        assert len(adapters["confirmation_sender"].sent) == 1

    @pytest.mark.asyncio
    async def test_reference_collision_regenerates(self, db_session, adapters, use_cases):
        await self._seed(db_session)
        first = await use_cases["create_booking"].execute(
            CreateBookingRequest.model_validate(booking_payload())
        )

        adapters["token_generator"].queue_reference(first.booking.reference)
        second = await use_cases["create_booking"].execute(
            CreateBookingRequest.model_validate(booking_payload())
        )

        assert second.booking.reference != first.booking.reference
        assert second.booking.reference.startswith("TB-")


class TestSQLAlchemyTransactionManager:
    @pytest.mark.asyncio
    async def test_error_rolls_back_the_unit_of_work(self, db_session):
        tm = SQLAlchemyTransactionManager(db_session)
        catalog = TourCatalogSQL(db_session)

        with pytest.raises(RuntimeError):
            async with tm.start():
                await catalog.save_tour(make_flat_tour())
                raise RuntimeError("boom")

        assert await catalog.get_tour("tour-flat") is None

    @pytest.mark.asyncio
    async def test_inner_start_joins_outer_transaction(self, db_session):
        tm = SQLAlchemyTransactionManager(db_session)
        catalog = TourCatalogSQL(db_session)

        async with tm.start():
            async with tm.start():
                await catalog.save_tour(make_flat_tour())
            assert db_session.in_transaction()

        assert not db_session.in_transaction()
        assert (await catalog.get_tour("tour-flat")).name == "Phi Phi Island Day Trip"
