"""
AvailabilityLedger: capacity is consumed only through the guarded commit, so
concurrent commits can never push booked past capacity or below zero.
"""

import asyncio

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from helpers import make_flat_tour, make_slot
from tour_booking.domain.errors import (
    AvailabilitySlotNotFoundError,
    CapacityExceededError,
    InvalidCapacityError,
)
from tour_booking.infrastructure.db.repositories.availability_ledger_sql import (
    AvailabilityLedgerSQL,
)
from tour_booking.infrastructure.db.repositories.tour_catalog_sql import TourCatalogSQL
from tour_booking.infrastructure.in_memory import InMemoryAvailabilityLedger


@pytest.fixture
def ledger():
    ledger = InMemoryAvailabilityLedger()
    ledger.slots["slot-a"] = make_slot(capacity=5, booked=3)
    return ledger


class TestInMemoryLedger:
    @pytest.mark.asyncio
    async def test_check_capacity_is_advisory(self, ledger):
        assert await ledger.check_capacity("slot-a", 2) is True
        assert await ledger.check_capacity("slot-a", 3) is False
        # checking never consumes anything
        assert (await ledger.get_slot("slot-a")).booked == 3

    @pytest.mark.asyncio
    async def test_commit_up_to_capacity(self, ledger):
        await ledger.commit("slot-a", 2)
        assert (await ledger.get_slot("slot-a")).booked == 5

    @pytest.mark.asyncio
    async def test_commit_over_capacity_fails_without_change(self, ledger):
        with pytest.raises(CapacityExceededError):
            await ledger.commit("slot-a", 3)
        assert (await ledger.get_slot("slot-a")).booked == 3

    @pytest.mark.asyncio
    async def test_commit_on_disabled_slot_fails(self, ledger):
        ledger.slots["slot-a"].enabled = False
        with pytest.raises(CapacityExceededError):
            await ledger.commit("slot-a", 1)

    @pytest.mark.asyncio
    async def test_concurrent_commits_never_exceed_capacity(self, ledger):
        results = await asyncio.gather(
            *(ledger.commit("slot-a", 1) for _ in range(6)), return_exceptions=True
        )
        failures = [r for r in results if isinstance(r, CapacityExceededError)]
        assert len(failures) == 4
        assert (await ledger.get_slot("slot-a")).booked == 5

    @pytest.mark.asyncio
    async def test_release_never_goes_negative(self, ledger):
        assert await ledger.release("slot-a", 4) is False
        assert await ledger.release("slot-a", 3) is True
        assert (await ledger.get_slot("slot-a")).booked == 0

    @pytest.mark.asyncio
    async def test_find_open_slots_skips_full_and_disabled(self, ledger):
        ledger.slots["slot-full"] = make_slot("slot-full", capacity=2, booked=2)
        ledger.slots["slot-off"] = make_slot("slot-off", capacity=5, booked=0)
        ledger.slots["slot-off"].enabled = False
        open_ids = [s.id for s in await ledger.find_open_slots("tour-flat")]
        assert open_ids == ["slot-a"]

    @pytest.mark.asyncio
    async def test_capacity_cannot_drop_below_booked(self, ledger):
        with pytest.raises(InvalidCapacityError):
            await ledger.update_slot("slot-a", capacity=2)
        slot = await ledger.update_slot("slot-a", capacity=3)
        assert slot.capacity == 3
        assert not slot.is_open

    @pytest.mark.asyncio
    async def test_update_unknown_slot(self, ledger):
        with pytest.raises(AvailabilitySlotNotFoundError):
            await ledger.update_slot("missing", enabled=False)


async def _seed_sql_slot(session: AsyncSession, capacity: int, booked: int) -> None:
    async with session.begin():
        await TourCatalogSQL(session).save_tour(make_flat_tour())
        await AvailabilityLedgerSQL(session).create_slot(
            make_slot(capacity=capacity, booked=booked)
        )


class TestSQLLedger:
    @pytest.mark.asyncio
    async def test_guarded_commit(self, db_session):
        await _seed_sql_slot(db_session, capacity=5, booked=3)
        ledger = AvailabilityLedgerSQL(db_session)

        async with db_session.begin():
            await ledger.commit("slot-a", 2)
            with pytest.raises(CapacityExceededError):
                await ledger.commit("slot-a", 1)

        slot = await ledger.get_slot("slot-a")
        assert slot.booked == 5
        assert slot.open_capacity == 0

    @pytest.mark.asyncio
    async def test_release_and_capacity_update(self, db_session):
        await _seed_sql_slot(db_session, capacity=5, booked=3)
        ledger = AvailabilityLedgerSQL(db_session)

        async with db_session.begin():
            assert await ledger.release("slot-a", 5) is False
            assert await ledger.release("slot-a", 2) is True
            with pytest.raises(InvalidCapacityError):
                await ledger.update_slot("slot-a", capacity=0)
            slot = await ledger.update_slot("slot-a", capacity=1, enabled=False)

        assert slot.capacity == 1
        assert slot.booked == 1
        assert slot.enabled is False
        assert await ledger.find_open_slots("tour-flat") == []

    @pytest.mark.asyncio
    @pytest.mark.slow
    async def test_concurrent_commits_on_separate_connections(self, file_engine):
        sessions = async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)
        async with sessions() as session:
            await _seed_sql_slot(session, capacity=5, booked=0)

        async def commit_one() -> bool:
            async with sessions() as session:
                try:
                    async with session.begin():
                        await AvailabilityLedgerSQL(session).commit("slot-a", 1)
                except CapacityExceededError:
                    return False
                return True

        results = await asyncio.gather(*(commit_one() for _ in range(8)))

        assert results.count(True) == 5
        async with sessions() as session:
            slot = await AvailabilityLedgerSQL(session).get_slot("slot-a")
        assert slot.booked == 5
