from dataclasses import dataclass
from datetime import date, datetime


@dataclass
class AvailabilitySlot:
    """Bookable capacity for one tour on one date, optionally at one time of day."""

    id: str
    tour_id: str
    date: date
    capacity: int
    booked: int = 0
    enabled: bool = True
    time_slot: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def open_capacity(self) -> int:
        return max(self.capacity - self.booked, 0)

    @property
    def is_open(self) -> bool:
        return self.enabled and self.capacity > self.booked

    def can_accommodate(self, units: int) -> bool:
        return self.enabled and units > 0 and self.capacity - self.booked >= units
