"""Domain exceptions for the booking and pricing engine."""


class DomainError(Exception):
    """Base class for every domain error."""

    status_code = 400

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


# === Pricing errors ===


class PricingError(DomainError):
    """Raised by the pricing engine when a selection cannot be priced."""


class InvalidGuestCountError(PricingError):
    """Guest count outside the configured [min, max] range."""

    def __init__(self, requested: int, min_guests: int, max_guests: int):
        super().__init__(
            message=f"Invalid guest count: {requested} (allowed {min_guests}-{max_guests})",
            code="INVALID_GUEST_COUNT",
        )
        self.requested = requested
        self.min_guests = min_guests
        self.max_guests = max_guests


class InvalidSeatSelectionError(PricingError):
    """Seat type unknown, or quantity beyond what one booking may take."""

    def __init__(self, message: str):
        super().__init__(message=message, code="INVALID_SEAT_SELECTION")


# === Booking validation errors ===


class MissingRequiredFieldError(DomainError):
    def __init__(self, field: str):
        super().__init__(
            message=f"Missing required field: {field}",
            code="MISSING_REQUIRED_FIELD",
        )
        self.field = field


class InvalidEmailFormatError(DomainError):
    def __init__(self, email: str):
        super().__init__(message="Invalid email format", code="INVALID_EMAIL_FORMAT")
        self.email = email


class InvalidSelectionError(DomainError):
    def __init__(self, message: str = "Invalid booking selection"):
        super().__init__(message=message, code="INVALID_SELECTION")


class SlotUnavailableError(DomainError):
    """Advisory capacity check failed at booking creation time."""

    def __init__(self, slot_id: str | None, requested_units: int):
        super().__init__(
            message="Selected date or time slot is no longer available",
            code="SLOT_UNAVAILABLE",
        )
        self.slot_id = slot_id
        self.requested_units = requested_units


class PricingValidationFailedError(DomainError):
    """The server-side pricing run rejected the selection."""

    def __init__(self, cause: PricingError):
        super().__init__(message=cause.message, code="PRICING_VALIDATION_FAILED")
        self.reason = cause.code


# === Not found ===


class BookingNotFoundError(DomainError):
    status_code = 404

    def __init__(self, booking_id: str):
        super().__init__(message=f"Booking not found: {booking_id}", code="BOOKING_NOT_FOUND")
        self.booking_id = booking_id


class TourNotFoundError(DomainError):
    status_code = 404

    def __init__(self, tour_id: str):
        super().__init__(message=f"Tour not found: {tour_id}", code="TOUR_NOT_FOUND")
        self.tour_id = tour_id


class AvailabilitySlotNotFoundError(DomainError):
    status_code = 404

    def __init__(self, slot_id: str):
        super().__init__(
            message=f"Availability slot not found: {slot_id}",
            code="AVAILABILITY_SLOT_NOT_FOUND",
        )
        self.slot_id = slot_id


# === Conflicts ===


class CapacityExceededError(DomainError):
    """The atomic capacity commit found the slot full (or disabled)."""

    status_code = 409

    def __init__(self, slot_id: str, units: int):
        super().__init__(
            message=f"Capacity exceeded for slot {slot_id}: cannot commit {units} units",
            code="CAPACITY_EXCEEDED",
        )
        self.slot_id = slot_id
        self.units = units


class InvalidBookingTransitionError(DomainError):
    status_code = 409

    def __init__(self, current_status: str, target_status: str):
        super().__init__(
            message=f"Cannot move booking from '{current_status}' to '{target_status}'",
            code="INVALID_BOOKING_TRANSITION",
        )
        self.current_status = current_status
        self.target_status = target_status


class BookingNotConfirmedError(DomainError):
    status_code = 409

    def __init__(self, booking_id: str, status: str):
        super().__init__(
            message=f"Booking {booking_id} is {status}; only confirmed bookings have a voucher to send",
            code="BOOKING_NOT_CONFIRMED",
        )
        self.booking_id = booking_id
        self.status = status


class PaymentIssueUnresolvedError(DomainError):
    status_code = 409

    def __init__(self, booking_id: str, payment_issue: str):
        super().__init__(
            message=f"Booking {booking_id} has an unresolved payment issue: {payment_issue}",
            code="PAYMENT_ISSUE_UNRESOLVED",
        )
        self.booking_id = booking_id
        self.payment_issue = payment_issue


class InvalidCapacityError(DomainError):
    status_code = 409

    def __init__(self, capacity: int, booked: int):
        super().__init__(
            message=f"Capacity {capacity} is below the {booked} units already booked",
            code="INVALID_CAPACITY",
        )
        self.capacity = capacity
        self.booked = booked


class BookingReferenceCollisionError(DomainError):
    status_code = 409

    def __init__(self, reference: str):
        super().__init__(
            message=f"Booking reference already exists: {reference}",
            code="BOOKING_REFERENCE_COLLISION",
        )
        self.reference = reference


# === External dependencies ===


class InvalidSignatureError(DomainError):
    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message=message, code="INVALID_SIGNATURE")


class PaymentGatewayNotConfiguredError(DomainError):
    status_code = 503

    def __init__(self):
        super().__init__(
            message="Payments are not configured. Please contact support.",
            code="PAYMENT_GATEWAY_NOT_CONFIGURED",
        )


class PaymentGatewayError(DomainError):
    status_code = 502

    def __init__(self, message: str = "Failed to create payment intent"):
        super().__init__(message=message, code="PAYMENT_GATEWAY_ERROR")


class ConfirmationDeliveryError(DomainError):
    status_code = 502

    def __init__(self, message: str = "Failed to send booking confirmation"):
        super().__init__(message=message, code="CONFIRMATION_DELIVERY_FAILED")
