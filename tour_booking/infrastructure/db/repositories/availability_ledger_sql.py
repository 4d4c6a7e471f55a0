import logging
from datetime import date, datetime, timezone
from typing import Any, Mapping

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.application.interfaces.availability_ledger import AvailabilityLedger
from tour_booking.domain.entities.availability import AvailabilitySlot
from tour_booking.domain.errors import (
    AvailabilitySlotNotFoundError,
    CapacityExceededError,
    InvalidCapacityError,
)
from tour_booking.infrastructure.db.tables import tour_availability

logger = logging.getLogger(__name__)


def _row_to_slot(row: Mapping[str, Any]) -> AvailabilitySlot:
    return AvailabilitySlot(
        id=row["id"],
        tour_id=row["tour_id"],
        date=row["date"],
        time_slot=row["time_slot"],
        capacity=row["capacity"],
        booked=row["booked"],
        enabled=bool(row["enabled"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class AvailabilityLedgerSQL(AvailabilityLedger):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_slot(self, slot_id: str) -> AvailabilitySlot | None:
        result = await self._session.execute(
            select(tour_availability).where(tour_availability.c.id == slot_id).limit(1)
        )
        row = result.mappings().first()
        return _row_to_slot(row) if row else None

    async def find_open_slots(
        self, tour_id: str, date_from: date | None = None, date_to: date | None = None
    ) -> list[AvailabilitySlot]:
        stmt = select(tour_availability).where(
            tour_availability.c.tour_id == tour_id,
            tour_availability.c.enabled.is_(True),
            tour_availability.c.capacity > tour_availability.c.booked,
        )
        if date_from is not None:
            stmt = stmt.where(tour_availability.c.date >= date_from)
        if date_to is not None:
            stmt = stmt.where(tour_availability.c.date <= date_to)
        stmt = stmt.order_by(tour_availability.c.date, tour_availability.c.time_slot)
        result = await self._session.execute(stmt)
        return [_row_to_slot(row) for row in result.mappings().all()]

    async def check_capacity(self, slot_id: str, requested_units: int) -> bool:
        slot = await self.get_slot(slot_id)
        return slot is not None and slot.can_accommodate(requested_units)

    async def commit(self, slot_id: str, units: int) -> None:
        if units <= 0:
            raise ValueError(f"units must be positive: {units}")
        # Guarded increment: the database evaluates the condition and the write together.
        result = await self._session.execute(
            update(tour_availability)
            .where(
                tour_availability.c.id == slot_id,
                tour_availability.c.enabled.is_(True),
                tour_availability.c.booked + units <= tour_availability.c.capacity,
            )
            .values(
                booked=tour_availability.c.booked + units,
                updated_at=datetime.now(timezone.utc),
            )
        )
        if result.rowcount != 1:
            raise CapacityExceededError(slot_id, units)
        logger.info("Capacity committed", extra={"slot_id": slot_id, "units": units})

    async def release(self, slot_id: str, units: int) -> bool:
        if units <= 0:
            return False
        result = await self._session.execute(
            update(tour_availability)
            .where(
                tour_availability.c.id == slot_id,
                tour_availability.c.booked >= units,
            )
            .values(
                booked=tour_availability.c.booked - units,
                updated_at=datetime.now(timezone.utc),
            )
        )
        released = result.rowcount == 1
        if released:
            logger.info("Capacity released", extra={"slot_id": slot_id, "units": units})
        return released

    async def create_slot(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        await self._session.execute(
            insert(tour_availability).values(
                id=slot.id,
                tour_id=slot.tour_id,
                date=slot.date,
                time_slot=slot.time_slot,
                capacity=slot.capacity,
                booked=slot.booked,
                enabled=slot.enabled,
                created_at=slot.created_at,
                updated_at=slot.updated_at,
            )
        )
        return slot

    async def update_slot(
        self, slot_id: str, enabled: bool | None = None, capacity: int | None = None
    ) -> AvailabilitySlot:
        slot = await self.get_slot(slot_id)
        if slot is None:
            raise AvailabilitySlotNotFoundError(slot_id)

        values: dict[str, Any] = {"updated_at": datetime.now(timezone.utc)}
        stmt = update(tour_availability).where(tour_availability.c.id == slot_id)
        if enabled is not None:
            values["enabled"] = enabled
        if capacity is not None:
            # Guarded like commit so a concurrent commit cannot slip under the new capacity.
            stmt = stmt.where(tour_availability.c.booked <= capacity)
            values["capacity"] = capacity

        result = await self._session.execute(stmt.values(values))
        if result.rowcount != 1:
            current = await self.get_slot(slot_id)
            raise InvalidCapacityError(capacity, current.booked if current else slot.booked)
        return await self.get_slot(slot_id)
