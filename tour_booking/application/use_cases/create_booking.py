import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pydantic import EmailStr, TypeAdapter, ValidationError

from tour_booking.api.schemas.bookings import (
    BookingRef,
    CreateBookingRequest,
    CreateBookingResponse,
    SelectionIn,
)
from tour_booking.application.interfaces.availability_ledger import AvailabilityLedger
from tour_booking.application.interfaces.booking_repo import BookingRepo
from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.token_generator import TokenGenerator
from tour_booking.application.interfaces.tour_catalog import TourCatalog
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.domain.constants import (
    BOOKING_STATUS_PENDING,
    BOOKING_STATUS_PENDING_PAYMENT,
    ITEM_TYPE_TOUR,
    ITEM_TYPE_UPSELL,
)
from tour_booking.domain.entities.availability import AvailabilitySlot
from tour_booking.domain.entities.booking import Booking, BookingItem, Customer
from tour_booking.domain.entities.tour import Tour
from tour_booking.domain.errors import (
    BookingReferenceCollisionError,
    InvalidEmailFormatError,
    InvalidSelectionError,
    MissingRequiredFieldError,
    PricingError,
    PricingValidationFailedError,
    SlotUnavailableError,
)
from tour_booking.domain.pricing import BookingQuote, quote_booking

MAX_REFERENCE_ATTEMPTS = 3
CENT = Decimal("0.01")

REQUIRED_FIELDS = ("tour_id", "booking_date", "customer_name", "customer_email")

_EMAIL_ADAPTER = TypeAdapter(EmailStr)


def require_value(field_name: str, value: Any) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingRequiredFieldError(field_name)


def validate_email(email: str) -> str:
    """Returns the address as entered, stripped. Deliverability is not checked."""
    try:
        _EMAIL_ADAPTER.validate_python(email.strip())
    except ValidationError as exc:
        raise InvalidEmailFormatError(email) from exc
    return email.strip()


class CreateBookingUseCase:
    def __init__(
        self,
        tour_catalog: TourCatalog,
        booking_repo: BookingRepo,
        availability_ledger: AvailabilityLedger,
        token_generator: TokenGenerator,
        clock: Clock,
        transaction_manager: TransactionManager,
        default_language: str = "en",
    ) -> None:
        self._tour_catalog = tour_catalog
        self._booking_repo = booking_repo
        self._availability_ledger = availability_ledger
        self._token_generator = token_generator
        self._clock = clock
        self._transaction_manager = transaction_manager
        self._default_language = default_language
        self._logger = logging.getLogger(__name__)

    async def execute(self, request: CreateBookingRequest) -> CreateBookingResponse:
        self._validate_customer(request)
        selection = request.selection
        if selection is None:
            raise InvalidSelectionError("Missing booking selection")
        if selection.tour_id and selection.tour_id != request.tour_id:
            raise InvalidSelectionError("Selection does not belong to the requested tour")

        async with self._transaction_manager.start():
            tour = await self._tour_catalog.get_tour(request.tour_id)
            if tour is None:
                raise InvalidSelectionError(f"Unknown tour: {request.tour_id}")

            # Totals are always re-derived from the live configuration.
            try:
                quote = quote_booking(
                    tour.pricing,
                    selection.to_guest_selection(),
                    selection.to_upsell_selections(),
                    tour.upsell_index(),
                )
            except PricingError as exc:
                raise PricingValidationFailedError(exc) from exc

            if (
                selection.grand_total_retail is not None
                and selection.grand_total_retail != quote.total_retail
            ):
                self._logger.warning(
                    "Client total differs from server price",
                    extra={
                        "tour_id": tour.id,
                        "client_total": str(selection.grand_total_retail),
                        "server_total": str(quote.total_retail),
                    },
                )

            slot = None
            if tour.requires_availability:
                slot = await self._check_slot(request, tour, quote.tour.units)

            booking = await self._persist(request, tour, quote, slot, selection)

        self._logger.info(
            "Booking created",
            extra={
                "booking_id": booking.id,
                "booking_reference": booking.reference,
                "tour_id": tour.id,
                "status": booking.status,
                "total_retail": str(booking.total_retail),
            },
        )
        return CreateBookingResponse(
            booking=BookingRef(id=booking.id, reference=booking.reference, status=booking.status)
        )

    def _validate_customer(self, request: CreateBookingRequest) -> None:
        for field_name in REQUIRED_FIELDS:
            require_value(field_name, getattr(request, field_name))
        validate_email(request.customer_email)

    async def _check_slot(
        self, request: CreateBookingRequest, tour: Tour, units: int
    ) -> AvailabilitySlot:
        """Advisory check only; capacity is committed when payment succeeds."""
        if not request.availability_slot_id:
            raise SlotUnavailableError(None, units)
        slot = await self._availability_ledger.get_slot(request.availability_slot_id)
        selection_time = request.selection.time_slot if request.selection else None
        if (
            slot is None
            or slot.tour_id != tour.id
            or slot.date != request.booking_date
            or (selection_time and slot.time_slot and selection_time != slot.time_slot)
            or not await self._availability_ledger.check_capacity(slot.id, units)
        ):
            raise SlotUnavailableError(request.availability_slot_id, units)
        return slot

    async def _persist(
        self,
        request: CreateBookingRequest,
        tour: Tour,
        quote: BookingQuote,
        slot: AvailabilitySlot | None,
        selection: SelectionIn,
    ) -> Booking:
        now = self._clock.now()
        items = self._build_items(tour, quote, selection)
        status = (
            BOOKING_STATUS_PENDING_PAYMENT
            if tour.requires_online_payment
            else BOOKING_STATUS_PENDING
        )
        booking_id = self._token_generator.generate_booking_id()
        voucher_token = self._token_generator.generate_voucher_token()

        for attempt in range(1, MAX_REFERENCE_ATTEMPTS + 1):
            booking = Booking(
                id=booking_id,
                reference=self._token_generator.generate_reference(),
                tour_id=tour.id,
                status=status,
                customer=Customer(
                    name=request.customer_name.strip(),
                    email=request.customer_email.strip(),
                    phone=request.customer_phone,
                    nationality=request.customer_nationality,
                ),
                booking_date=request.booking_date,
                language=request.language or self._default_language,
                currency=quote.currency,
                voucher_token=voucher_token,
                items=items,
                availability_slot_id=slot.id if slot else None,
                notes=request.notes,
                created_at=now,
                updated_at=now,
            )
            booking.recalculate_totals()
            try:
                await self._booking_repo.create(booking)
                return booking
            except BookingReferenceCollisionError:
                if attempt == MAX_REFERENCE_ATTEMPTS:
                    raise
                self._logger.warning(
                    "Booking reference collision, regenerating",
                    extra={"booking_reference": booking.reference, "attempt": attempt},
                )
        raise RuntimeError("unreachable")

    def _build_items(
        self, tour: Tour, quote: BookingQuote, selection: SelectionIn
    ) -> list[BookingItem]:
        tour_quote = quote.tour
        # Mixed tiers (adult/child) collapse into one line; its unit price is the
        # average, while the subtotal keeps the exact breakdown total.
        unit_retail = (tour_quote.total_retail / tour_quote.units).quantize(CENT, ROUND_HALF_UP)
        unit_net = (tour_quote.total_net / tour_quote.units).quantize(CENT, ROUND_HALF_UP)
        metadata = {
            "pricingType": tour.pricing.type,
            "priceBreakdown": [line.to_dict() for line in tour_quote.lines],
            "timeSlot": selection.time_slot,
            "guestCounts": {
                "adults": selection.guest_counts.adults,
                "children": selection.guest_counts.children,
            },
        }
        if selection.seat_choice is not None:
            metadata["seatType"] = selection.seat_choice.seat_type

        tour_item = BookingItem(
            item_type=ITEM_TYPE_TOUR,
            item_id=tour.id,
            name=tour.name,
            quantity=tour_quote.units,
            unit_retail_price_snapshot=unit_retail,
            unit_net_price_snapshot=unit_net,
            subtotal_retail=tour_quote.total_retail,
            subtotal_net=tour_quote.total_net,
            metadata=metadata,
        )
        upsell_items = [
            BookingItem.snapshot(
                item_type=ITEM_TYPE_UPSELL,
                item_id=priced.upsell.id,
                name=priced.upsell.title,
                quantity=priced.quantity,
                unit_retail_price=priced.unit_retail_price,
                unit_net_price=priced.unit_net_price,
                metadata={
                    "pricingType": priced.upsell.pricing_type,
                    "selectedQuantity": priced.selected_quantity,
                },
            )
            for priced in quote.upsells
        ]
        return [tour_item, *upsell_items]
