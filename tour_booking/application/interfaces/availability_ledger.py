from abc import ABC, abstractmethod
from datetime import date

from tour_booking.domain.entities.availability import AvailabilitySlot


class AvailabilityLedger(ABC):
    """
    Owns capacity per (tour, date, time slot).

    check_capacity is advisory only. commit is the single source of truth and
    must be one conditional update (booked + n <= capacity), never a
    read-then-write, so concurrent commits cannot overbook a slot.
    """

    @abstractmethod
    async def get_slot(self, slot_id: str) -> AvailabilitySlot | None:
        raise NotImplementedError

    @abstractmethod
    async def find_open_slots(
        self, tour_id: str, date_from: date | None = None, date_to: date | None = None
    ) -> list[AvailabilitySlot]:
        raise NotImplementedError

    @abstractmethod
    async def check_capacity(self, slot_id: str, requested_units: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def commit(self, slot_id: str, units: int) -> None:
        """Raises CapacityExceededError when the guarded increment does not apply."""
        raise NotImplementedError

    @abstractmethod
    async def release(self, slot_id: str, units: int) -> bool:
        """Guarded decrement. Returns False when booked < units."""
        raise NotImplementedError

    @abstractmethod
    async def create_slot(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        raise NotImplementedError

    @abstractmethod
    async def update_slot(
        self, slot_id: str, enabled: bool | None = None, capacity: int | None = None
    ) -> AvailabilitySlot:
        """Raises AvailabilitySlotNotFoundError, or InvalidCapacityError if capacity < booked."""
        raise NotImplementedError
