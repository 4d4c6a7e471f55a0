"""
Pricing engine.

Turns a tour's pricing configuration plus a guest/seat selection into a price
breakdown. Everything here is deterministic and free of I/O, so the same code
backs the public quote endpoint and the authoritative re-pricing done when a
booking is created.

Three configuration variants exist:
- FlatPerPerson: one price for every guest.
- AdultChild: separate adult and child tiers.
- SeatBased: the guest picks one seat type and a quantity.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, ClassVar, Mapping, Sequence

from tour_booking.domain.constants import (
    DEFAULT_CHILD_MAX_AGE,
    DEFAULT_MAX_GUESTS,
    DEFAULT_MIN_GUESTS,
    DEFAULT_SEAT_CAPACITY,
    DEFAULT_UPSELL_MAX_QUANTITY,
)
from tour_booking.domain.errors import (
    InvalidGuestCountError,
    InvalidSeatSelectionError,
    InvalidSelectionError,
)

UPSELL_PER_PERSON = "per_person"
UPSELL_PER_BOOKING = "per_booking"
UPSELL_FLAT = "flat"
UPSELL_PRICING_TYPES = (UPSELL_PER_PERSON, UPSELL_PER_BOOKING, UPSELL_FLAT)


def _price(value: Any, name: str) -> Decimal:
    amount = Decimal(str(value))
    if amount < 0:
        raise ValueError(f"{name} cannot be negative: {amount}")
    return amount


def _currency(value: str) -> str:
    if not value or len(value) != 3:
        raise ValueError(f"currency must be a 3-letter code: {value!r}")
    return value.upper()


def _guest_range(min_guests: int, max_guests: int) -> None:
    if min_guests > max_guests:
        raise ValueError(f"min_guests ({min_guests}) cannot exceed max_guests ({max_guests})")


# === Configuration variants ===


@dataclass(frozen=True)
class FlatPerPerson:
    unit_retail_price: Decimal
    unit_net_price: Decimal
    currency: str
    min_guests: int = DEFAULT_MIN_GUESTS
    max_guests: int = DEFAULT_MAX_GUESTS

    type: ClassVar[str] = "flat_per_person"

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit_retail_price", _price(self.unit_retail_price, "unit_retail_price"))
        object.__setattr__(self, "unit_net_price", _price(self.unit_net_price, "unit_net_price"))
        object.__setattr__(self, "currency", _currency(self.currency))
        _guest_range(self.min_guests, self.max_guests)


@dataclass(frozen=True)
class AdultChild:
    adult_retail_price: Decimal
    adult_net_price: Decimal
    child_retail_price: Decimal
    child_net_price: Decimal
    currency: str
    child_max_age: int = DEFAULT_CHILD_MAX_AGE
    min_guests: int = DEFAULT_MIN_GUESTS
    max_guests: int = DEFAULT_MAX_GUESTS

    type: ClassVar[str] = "adult_child"

    def __post_init__(self) -> None:
        for name in ("adult_retail_price", "adult_net_price", "child_retail_price", "child_net_price"):
            object.__setattr__(self, name, _price(getattr(self, name), name))
        object.__setattr__(self, "currency", _currency(self.currency))
        _guest_range(self.min_guests, self.max_guests)


@dataclass(frozen=True)
class SeatType:
    seat_type_id: str
    label: str
    retail_price: Decimal
    net_price: Decimal
    capacity_per_booking: int = DEFAULT_SEAT_CAPACITY

    def __post_init__(self) -> None:
        object.__setattr__(self, "retail_price", _price(self.retail_price, "retail_price"))
        object.__setattr__(self, "net_price", _price(self.net_price, "net_price"))


@dataclass(frozen=True)
class SeatBased:
    seat_types: tuple[SeatType, ...]
    currency: str

    type: ClassVar[str] = "seat_based"

    def __post_init__(self) -> None:
        object.__setattr__(self, "seat_types", tuple(self.seat_types))
        object.__setattr__(self, "currency", _currency(self.currency))

    def find_seat(self, seat_type_id: str) -> SeatType | None:
        for seat in self.seat_types:
            if seat.seat_type_id == seat_type_id:
                return seat
        return None


PricingConfiguration = FlatPerPerson | AdultChild | SeatBased


def parse_pricing_config(data: Mapping[str, Any]) -> PricingConfiguration:
    """Build a configuration variant from its stored JSON form."""
    kind = data.get("type")
    if kind == FlatPerPerson.type:
        return FlatPerPerson(
            unit_retail_price=data["retail_price"],
            unit_net_price=data.get("net_price", 0),
            currency=data["currency"],
            min_guests=data.get("min_pax") or DEFAULT_MIN_GUESTS,
            max_guests=data.get("max_pax") or DEFAULT_MAX_GUESTS,
        )
    if kind == AdultChild.type:
        return AdultChild(
            adult_retail_price=data["adult_retail_price"],
            adult_net_price=data.get("adult_net_price", 0),
            child_retail_price=data["child_retail_price"],
            child_net_price=data.get("child_net_price", 0),
            currency=data["currency"],
            child_max_age=data.get("child_age_max") or DEFAULT_CHILD_MAX_AGE,
            min_guests=data.get("min_pax") or DEFAULT_MIN_GUESTS,
            max_guests=data.get("max_pax") or DEFAULT_MAX_GUESTS,
        )
    if kind == SeatBased.type:
        return SeatBased(
            seat_types=tuple(
                SeatType(
                    seat_type_id=seat["seat_type"],
                    label=seat.get("label") or seat["seat_type"],
                    retail_price=seat["retail_price"],
                    net_price=seat.get("net_price", 0),
                    capacity_per_booking=seat.get("capacity") or DEFAULT_SEAT_CAPACITY,
                )
                for seat in data.get("seats", [])
            ),
            currency=data["currency"],
        )
    raise ValueError(f"Unknown pricing configuration type: {kind!r}")


def pricing_config_to_dict(config: PricingConfiguration) -> dict[str, Any]:
    """Inverse of parse_pricing_config, used when persisting a tour."""
    if isinstance(config, FlatPerPerson):
        return {
            "type": config.type,
            "retail_price": str(config.unit_retail_price),
            "net_price": str(config.unit_net_price),
            "currency": config.currency,
            "min_pax": config.min_guests,
            "max_pax": config.max_guests,
        }
    if isinstance(config, AdultChild):
        return {
            "type": config.type,
            "adult_retail_price": str(config.adult_retail_price),
            "adult_net_price": str(config.adult_net_price),
            "child_retail_price": str(config.child_retail_price),
            "child_net_price": str(config.child_net_price),
            "currency": config.currency,
            "child_age_max": config.child_max_age,
            "min_pax": config.min_guests,
            "max_pax": config.max_guests,
        }
    return {
        "type": config.type,
        "currency": config.currency,
        "seats": [
            {
                "seat_type": seat.seat_type_id,
                "label": seat.label,
                "retail_price": str(seat.retail_price),
                "net_price": str(seat.net_price),
                "capacity": seat.capacity_per_booking,
            }
            for seat in config.seat_types
        ],
    }


# === Selection and results ===


@dataclass(frozen=True)
class GuestCounts:
    adults: int = 0
    children: int = 0

    @property
    def total(self) -> int:
        return self.adults + self.children


@dataclass(frozen=True)
class SeatChoice:
    seat_type_id: str
    quantity: int


@dataclass(frozen=True)
class GuestSelection:
    guest_counts: GuestCounts = field(default_factory=GuestCounts)
    seat_choice: SeatChoice | None = None


@dataclass(frozen=True)
class PriceBreakdownLine:
    label: str
    quantity: int
    unit_price: Decimal
    amount: Decimal
    unit_net_price: Decimal = Decimal("0")
    net_amount: Decimal = Decimal("0")
    kind: str = "per_person"

    @classmethod
    def priced(
        cls,
        label: str,
        quantity: int,
        unit_price: Decimal,
        unit_net_price: Decimal,
        kind: str,
    ) -> "PriceBreakdownLine":
        return cls(
            label=label,
            quantity=quantity,
            unit_price=unit_price,
            amount=unit_price * quantity,
            unit_net_price=unit_net_price,
            net_amount=unit_net_price * quantity,
            kind=kind,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "label": self.label,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class PriceQuote:
    lines: tuple[PriceBreakdownLine, ...]
    total_retail: Decimal
    total_net: Decimal
    currency: str
    units: int

    @classmethod
    def from_lines(cls, lines: Sequence[PriceBreakdownLine], currency: str) -> "PriceQuote":
        return cls(
            lines=tuple(lines),
            total_retail=sum((line.amount for line in lines), Decimal("0")),
            total_net=sum((line.net_amount for line in lines), Decimal("0")),
            currency=currency,
            units=sum(line.quantity for line in lines),
        )


def _check_guest_range(total: int, min_guests: int, max_guests: int) -> None:
    if total < 1 or total < min_guests or total > max_guests:
        raise InvalidGuestCountError(total, min_guests, max_guests)


def _price_flat(config: FlatPerPerson, selection: GuestSelection) -> PriceQuote:
    quantity = selection.guest_counts.total
    _check_guest_range(quantity, config.min_guests, config.max_guests)
    line = PriceBreakdownLine.priced(
        "Per Person", quantity, config.unit_retail_price, config.unit_net_price, "per_person"
    )
    return PriceQuote.from_lines([line], config.currency)


def _price_adult_child(config: AdultChild, selection: GuestSelection) -> PriceQuote:
    counts = selection.guest_counts
    if counts.adults < 0 or counts.children < 0:
        raise InvalidGuestCountError(counts.total, config.min_guests, config.max_guests)
    _check_guest_range(counts.total, config.min_guests, config.max_guests)

    lines = []
    if counts.adults > 0:
        lines.append(
            PriceBreakdownLine.priced(
                "Adult", counts.adults, config.adult_retail_price, config.adult_net_price, "adult"
            )
        )
    if counts.children > 0:
        lines.append(
            PriceBreakdownLine.priced(
                f"Child (0-{config.child_max_age})",
                counts.children,
                config.child_retail_price,
                config.child_net_price,
                "child",
            )
        )
    return PriceQuote.from_lines(lines, config.currency)


def _price_seats(config: SeatBased, selection: GuestSelection) -> PriceQuote:
    choice = selection.seat_choice
    if choice is None:
        raise InvalidSeatSelectionError("A seat type must be selected")
    seat = config.find_seat(choice.seat_type_id)
    if seat is None:
        raise InvalidSeatSelectionError(f"Unknown seat type: {choice.seat_type_id}")
    if choice.quantity < 1:
        raise InvalidSeatSelectionError("Seat quantity must be at least 1")
    if choice.quantity > seat.capacity_per_booking:
        raise InvalidSeatSelectionError(
            f"At most {seat.capacity_per_booking} '{seat.label}' seats per booking"
        )
    line = PriceBreakdownLine.priced(
        f"{seat.label} Seat", choice.quantity, seat.retail_price, seat.net_price, "seat"
    )
    return PriceQuote.from_lines([line], config.currency)


def compute_price(config: PricingConfiguration, selection: GuestSelection) -> PriceQuote:
    """
    Price a guest selection against one configuration variant.

    Raises:
        InvalidGuestCountError: guest total outside [min_guests, max_guests].
        InvalidSeatSelectionError: missing/unknown seat type or quantity over the per-booking cap.
    """
    if isinstance(config, FlatPerPerson):
        return _price_flat(config, selection)
    if isinstance(config, AdultChild):
        return _price_adult_child(config, selection)
    if isinstance(config, SeatBased):
        return _price_seats(config, selection)
    raise TypeError(f"Unsupported pricing configuration: {type(config).__name__}")


# === Upsells ===


@dataclass(frozen=True)
class Upsell:
    id: str
    tour_id: str
    title: str
    pricing_type: str
    retail_price: Decimal
    net_price: Decimal
    currency: str
    max_quantity: int = DEFAULT_UPSELL_MAX_QUANTITY
    active: bool = True

    def __post_init__(self) -> None:
        if self.pricing_type not in UPSELL_PRICING_TYPES:
            raise ValueError(f"Unknown upsell pricing type: {self.pricing_type}")
        object.__setattr__(self, "retail_price", _price(self.retail_price, "retail_price"))
        object.__setattr__(self, "net_price", _price(self.net_price, "net_price"))
        object.__setattr__(self, "currency", _currency(self.currency))


@dataclass(frozen=True)
class UpsellSelection:
    upsell_id: str
    quantity: int = 1


@dataclass(frozen=True)
class PricedUpsell:
    upsell: Upsell
    selected_quantity: int
    quantity: int
    unit_retail_price: Decimal
    unit_net_price: Decimal
    subtotal_retail: Decimal
    subtotal_net: Decimal


def price_upsell(upsell: Upsell, selected_quantity: int, guests: int) -> PricedUpsell:
    """
    Price one upsell.

    per_person multiplies by the guest count, per_booking is charged once,
    flat is charged per selected unit. The resulting line quantity always
    satisfies subtotal == quantity * unit price.
    """
    if selected_quantity < 1 or selected_quantity > upsell.max_quantity:
        raise InvalidSelectionError(
            f"Quantity for '{upsell.title}' must be between 1 and {upsell.max_quantity}"
        )
    if upsell.pricing_type == UPSELL_PER_BOOKING:
        selected_quantity = 1
        quantity = 1
    elif upsell.pricing_type == UPSELL_PER_PERSON:
        quantity = max(guests, 1) * selected_quantity
    else:
        quantity = selected_quantity
    return PricedUpsell(
        upsell=upsell,
        selected_quantity=selected_quantity,
        quantity=quantity,
        unit_retail_price=upsell.retail_price,
        unit_net_price=upsell.net_price,
        subtotal_retail=upsell.retail_price * quantity,
        subtotal_net=upsell.net_price * quantity,
    )


@dataclass(frozen=True)
class BookingQuote:
    tour: PriceQuote
    upsells: tuple[PricedUpsell, ...]
    total_retail: Decimal
    total_net: Decimal
    currency: str


def quote_booking(
    config: PricingConfiguration,
    selection: GuestSelection,
    upsell_selections: Sequence[UpsellSelection],
    available_upsells: Mapping[str, Upsell],
) -> BookingQuote:
    """Price the tour line plus every selected upsell in the tour's currency."""
    tour_quote = compute_price(config, selection)
    guests = selection.guest_counts.total or tour_quote.units

    seen: set[str] = set()
    priced: list[PricedUpsell] = []
    for choice in upsell_selections:
        if choice.upsell_id in seen:
            raise InvalidSelectionError(f"Upsell selected more than once: {choice.upsell_id}")
        seen.add(choice.upsell_id)
        upsell = available_upsells.get(choice.upsell_id)
        if upsell is None or not upsell.active:
            raise InvalidSelectionError(f"Upsell not available: {choice.upsell_id}")
        if upsell.currency != tour_quote.currency:
            raise InvalidSelectionError(f"Upsell currency mismatch: {upsell.currency}")
        priced.append(price_upsell(upsell, choice.quantity, guests))

    return BookingQuote(
        tour=tour_quote,
        upsells=tuple(priced),
        total_retail=tour_quote.total_retail + sum((p.subtotal_retail for p in priced), Decimal("0")),
        total_net=tour_quote.total_net + sum((p.subtotal_net for p in priced), Decimal("0")),
        currency=tour_quote.currency,
    )
