import datetime as dt
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, condecimal
from pydantic.alias_generators import to_camel

from tour_booking.domain.entities.availability import AvailabilitySlot
from tour_booking.domain.entities.booking import Booking, BookingItem, BookingStatus
from tour_booking.domain.pricing import (
    BookingQuote,
    GuestCounts,
    GuestSelection,
    SeatChoice,
    UpsellSelection,
)

Money = condecimal(max_digits=12, decimal_places=2, ge=0)

# Amounts go over the wire as fixed two-decimal strings.
Amount = Annotated[
    Decimal, PlainSerializer(lambda v: format(v, ".2f"), return_type=str, when_used="json")
]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# === Selection ===


class GuestCountsIn(CamelModel):
    adults: int = Field(default=0, ge=0)
    children: int = Field(default=0, ge=0)


class SeatChoiceIn(CamelModel):
    seat_type: str
    quantity: int


class UpsellSelectionIn(CamelModel):
    upsell_id: str
    quantity: int = 1


class SelectionIn(CamelModel):
    tour_id: str | None = None
    date: dt.date | None = None
    time_slot: str | None = None
    guest_counts: GuestCountsIn = Field(default_factory=GuestCountsIn)
    seat_choice: SeatChoiceIn | None = None
    upsell_selections: list[UpsellSelectionIn] = Field(default_factory=list)
    # Client-computed running total; never trusted, only compared for logging.
    grand_total_retail: Decimal | None = None

    def to_guest_selection(self) -> GuestSelection:
        seat = None
        if self.seat_choice is not None:
            seat = SeatChoice(
                seat_type_id=self.seat_choice.seat_type,
                quantity=self.seat_choice.quantity,
            )
        return GuestSelection(
            guest_counts=GuestCounts(
                adults=self.guest_counts.adults,
                children=self.guest_counts.children,
            ),
            seat_choice=seat,
        )

    def to_upsell_selections(self) -> list[UpsellSelection]:
        return [
            UpsellSelection(upsell_id=u.upsell_id, quantity=u.quantity)
            for u in self.upsell_selections
        ]


# === Quote ===


class QuoteLine(CamelModel):
    type: str
    label: str
    quantity: int
    unit_price: Amount
    amount: Amount


class QuoteUpsellLine(CamelModel):
    upsell_id: str
    title: str
    pricing_type: str
    quantity: int
    unit_price: Amount
    amount: Amount


class QuoteResponse(CamelModel):
    success: bool = True
    lines: list[QuoteLine]
    upsells: list[QuoteUpsellLine]
    total_retail: Amount
    currency: str

    @classmethod
    def from_quote(cls, quote: BookingQuote) -> "QuoteResponse":
        return cls(
            lines=[
                QuoteLine(
                    type=line.kind,
                    label=line.label,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    amount=line.amount,
                )
                for line in quote.tour.lines
            ],
            upsells=[
                QuoteUpsellLine(
                    upsell_id=p.upsell.id,
                    title=p.upsell.title,
                    pricing_type=p.upsell.pricing_type,
                    quantity=p.quantity,
                    unit_price=p.unit_retail_price,
                    amount=p.subtotal_retail,
                )
                for p in quote.upsells
            ],
            total_retail=quote.total_retail,
            currency=quote.currency,
        )


# === Booking creation ===


class CreateBookingRequest(CamelModel):
    # Required fields are optional here so the use case can report
    # MISSING_REQUIRED_FIELD instead of a generic validation error.
    tour_id: str | None = None
    availability_slot_id: str | None = None
    booking_date: dt.date | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    customer_nationality: str | None = None
    language: str | None = None
    selection: SelectionIn | None = None
    notes: str | None = None


class BookingRef(CamelModel):
    id: str
    reference: str
    status: str


class CreateBookingResponse(CamelModel):
    success: bool = True
    booking: BookingRef


# === Payment intent ===


class CreatePaymentIntentRequest(CamelModel):
    booking_id: str
    amount: Decimal | None = None
    currency: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    tour_name: str | None = None
    booking_reference: str | None = None


class CreatePaymentIntentResponse(CamelModel):
    success: bool = True
    client_secret: str
    intent_id: str
    publishable_key: str | None = None
    payment_methods: list[str]


class StripeWebhookEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    livemode: bool | None = None
    created: int | None = None


# === Booking views ===


class CustomerView(CamelModel):
    name: str
    email: str
    phone: str | None = None
    nationality: str | None = None


class BookingItemView(CamelModel):
    item_type: str
    item_id: str
    name: str
    quantity: int
    unit_retail_price_snapshot: Amount
    subtotal_retail: Amount
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_item(cls, item: BookingItem) -> "BookingItemView":
        return cls(
            item_type=item.item_type,
            item_id=item.item_id,
            name=item.name,
            quantity=item.quantity,
            unit_retail_price_snapshot=item.unit_retail_price_snapshot,
            subtotal_retail=item.subtotal_retail,
            metadata=item.metadata,
        )


class AdminBookingItemView(BookingItemView):
    unit_net_price_snapshot: Amount
    subtotal_net: Amount

    @classmethod
    def from_item(cls, item: BookingItem) -> "AdminBookingItemView":
        return cls(
            **BookingItemView.from_item(item).model_dump(),
            unit_net_price_snapshot=item.unit_net_price_snapshot,
            subtotal_net=item.subtotal_net,
        )


class VoucherResponse(CamelModel):
    id: str
    reference: str
    status: str
    tour_id: str
    tour_name: str
    booking_date: dt.date
    language: str
    customer: CustomerView
    items: list[BookingItemView]
    total_retail: Amount
    currency: str

    @classmethod
    def from_booking(cls, booking: Booking) -> "VoucherResponse":
        return cls(
            id=booking.id,
            reference=booking.reference,
            status=booking.status,
            tour_id=booking.tour_id,
            tour_name=booking.tour_name,
            booking_date=booking.booking_date,
            language=booking.language,
            customer=CustomerView(**vars(booking.customer)),
            items=[BookingItemView.from_item(item) for item in booking.items],
            total_retail=booking.total_retail,
            currency=booking.currency,
        )


class AdminBookingView(CamelModel):
    id: str
    reference: str
    status: str
    tour_id: str
    booking_date: dt.date
    language: str
    customer: CustomerView
    items: list[AdminBookingItemView]
    total_retail: Amount
    total_net: Amount
    currency: str
    availability_slot_id: str | None = None
    payment_intent_id: str | None = None
    notes: str | None = None
    payment_failure_reason: str | None = None
    payment_issue: str | None = None
    capacity_committed_units: int = 0
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "AdminBookingView":
        return cls(
            id=booking.id,
            reference=booking.reference,
            status=booking.status,
            tour_id=booking.tour_id,
            booking_date=booking.booking_date,
            language=booking.language,
            customer=CustomerView(**vars(booking.customer)),
            items=[AdminBookingItemView.from_item(item) for item in booking.items],
            total_retail=booking.total_retail,
            total_net=booking.total_net,
            currency=booking.currency,
            availability_slot_id=booking.availability_slot_id,
            payment_intent_id=booking.payment_intent_id,
            notes=booking.notes,
            payment_failure_reason=booking.payment_failure_reason,
            payment_issue=booking.payment_issue,
            capacity_committed_units=booking.capacity_committed_units,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class AdminBookingResponse(CamelModel):
    success: bool = True
    booking: AdminBookingView


# === Admin updates ===


class BookingItemIn(CamelModel):
    item_type: Literal["tour", "upsell"]
    item_id: str
    name: str
    quantity: int = Field(ge=1)
    unit_retail_price_snapshot: Money
    unit_net_price_snapshot: Money = Field(default=Decimal("0"))
    metadata: dict[str, Any] | None = None


class UpdateBookingRequest(CamelModel):
    booking_date: dt.date | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    customer_nationality: str | None = None
    status: BookingStatus | None = None
    notes: str | None = None
    items: list[BookingItemIn] | None = None


class ExpirePendingResponse(CamelModel):
    success: bool = True
    expired: list[str]


# === Availability ===


class CreateSlotRequest(CamelModel):
    date: dt.date
    time_slot: str | None = None
    capacity: int = Field(default=20, ge=0)


class UpdateSlotRequest(CamelModel):
    enabled: bool | None = None
    capacity: int | None = Field(default=None, ge=0)


class SlotView(CamelModel):
    id: str
    tour_id: str
    date: dt.date
    time_slot: str | None = None
    capacity: int
    booked: int
    enabled: bool
    open_capacity: int

    @classmethod
    def from_slot(cls, slot: AvailabilitySlot) -> "SlotView":
        return cls(
            id=slot.id,
            tour_id=slot.tour_id,
            date=slot.date,
            time_slot=slot.time_slot,
            capacity=slot.capacity,
            booked=slot.booked,
            enabled=slot.enabled,
            open_capacity=slot.open_capacity,
        )


class SlotResponse(CamelModel):
    success: bool = True
    slot: SlotView


class SlotListResponse(CamelModel):
    success: bool = True
    slots: list[SlotView]
