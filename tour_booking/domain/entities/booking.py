"""BookingAggregate - the persisted customer order and its state machine."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from tour_booking.domain.constants import ITEM_TYPE_TOUR, ITEM_TYPE_UPSELL


class BookingStatus(str, Enum):
    PENDING = "pending"
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# pending is used when a tour takes no online payment; an operator moves it on.
ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.PENDING_PAYMENT, BookingStatus.CONFIRMED, BookingStatus.CANCELLED}
    ),
    BookingStatus.PENDING_PAYMENT: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CANCELLED}
    ),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return BookingStatus(target) in ALLOWED_TRANSITIONS[BookingStatus(current)]


@dataclass
class Customer:
    name: str
    email: str
    phone: str | None = None
    nationality: str | None = None


@dataclass
class BookingItem:
    """
    One line of a booking. Prices are snapshots taken at creation time and
    are never recomputed from the live pricing configuration.
    """

    item_type: str
    item_id: str
    name: str
    quantity: int
    unit_retail_price_snapshot: Decimal
    unit_net_price_snapshot: Decimal
    subtotal_retail: Decimal
    subtotal_net: Decimal
    metadata: dict[str, Any] | None = None
    id: int | None = None

    @classmethod
    def snapshot(
        cls,
        item_type: str,
        item_id: str,
        name: str,
        quantity: int,
        unit_retail_price: Decimal,
        unit_net_price: Decimal,
        metadata: dict[str, Any] | None = None,
    ) -> "BookingItem":
        return cls(
            item_type=item_type,
            item_id=item_id,
            name=name,
            quantity=quantity,
            unit_retail_price_snapshot=Decimal(unit_retail_price),
            unit_net_price_snapshot=Decimal(unit_net_price),
            subtotal_retail=Decimal(unit_retail_price) * quantity,
            subtotal_net=Decimal(unit_net_price) * quantity,
            metadata=metadata,
        )


@dataclass
class Booking:
    id: str
    reference: str
    tour_id: str
    status: str
    customer: Customer
    booking_date: date
    language: str
    currency: str
    voucher_token: str
    items: list[BookingItem] = field(default_factory=list)
    total_retail: Decimal = Decimal("0")
    total_net: Decimal = Decimal("0")
    availability_slot_id: str | None = None
    payment_intent_id: str | None = None
    notes: str | None = None
    payment_failure_reason: str | None = None
    payment_issue: str | None = None
    capacity_committed_units: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def tour_item(self) -> BookingItem | None:
        for item in self.items:
            if item.item_type == ITEM_TYPE_TOUR:
                return item
        return None

    @property
    def upsell_items(self) -> list[BookingItem]:
        return [item for item in self.items if item.item_type == ITEM_TYPE_UPSELL]

    @property
    def tour_name(self) -> str:
        item = self.tour_item
        return item.name if item else "Tour"

    def recalculate_totals(self) -> None:
        self.total_retail = sum((item.subtotal_retail for item in self.items), Decimal("0"))
        self.total_net = sum((item.subtotal_net for item in self.items), Decimal("0"))
