import copy
from datetime import date, datetime, timezone

from tour_booking.application.interfaces.availability_ledger import AvailabilityLedger
from tour_booking.domain.entities.availability import AvailabilitySlot
from tour_booking.domain.errors import (
    AvailabilitySlotNotFoundError,
    CapacityExceededError,
    InvalidCapacityError,
)


class InMemoryAvailabilityLedger(AvailabilityLedger):
    """
    Single-process ledger. Each mutation checks and writes without awaiting in
    between, which makes it atomic with respect to other coroutines.
    """

    def __init__(self) -> None:
        self.slots: dict[str, AvailabilitySlot] = {}

    async def get_slot(self, slot_id: str) -> AvailabilitySlot | None:
        slot = self.slots.get(slot_id)
        return copy.copy(slot) if slot else None

    async def find_open_slots(
        self, tour_id: str, date_from: date | None = None, date_to: date | None = None
    ) -> list[AvailabilitySlot]:
        found = [
            copy.copy(slot)
            for slot in self.slots.values()
            if slot.tour_id == tour_id
            and slot.is_open
            and (date_from is None or slot.date >= date_from)
            and (date_to is None or slot.date <= date_to)
        ]
        return sorted(found, key=lambda s: (s.date, s.time_slot or ""))

    async def check_capacity(self, slot_id: str, requested_units: int) -> bool:
        slot = self.slots.get(slot_id)
        return slot is not None and slot.can_accommodate(requested_units)

    async def commit(self, slot_id: str, units: int) -> None:
        if units <= 0:
            raise ValueError(f"units must be positive: {units}")
        slot = self.slots.get(slot_id)
        if slot is None or not slot.enabled or slot.booked + units > slot.capacity:
            raise CapacityExceededError(slot_id, units)
        slot.booked += units
        slot.updated_at = datetime.now(timezone.utc)

    async def release(self, slot_id: str, units: int) -> bool:
        slot = self.slots.get(slot_id)
        if slot is None or units <= 0 or slot.booked < units:
            return False
        slot.booked -= units
        slot.updated_at = datetime.now(timezone.utc)
        return True

    async def create_slot(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        self.slots[slot.id] = copy.copy(slot)
        return copy.copy(slot)

    async def update_slot(
        self, slot_id: str, enabled: bool | None = None, capacity: int | None = None
    ) -> AvailabilitySlot:
        slot = self.slots.get(slot_id)
        if slot is None:
            raise AvailabilitySlotNotFoundError(slot_id)
        if capacity is not None and capacity < slot.booked:
            raise InvalidCapacityError(capacity, slot.booked)
        if enabled is not None:
            slot.enabled = enabled
        if capacity is not None:
            slot.capacity = capacity
        slot.updated_at = datetime.now(timezone.utc)
        return copy.copy(slot)
