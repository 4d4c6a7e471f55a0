BOOKING_STATUS_PENDING = "pending"
BOOKING_STATUS_PENDING_PAYMENT = "pending_payment"
BOOKING_STATUS_CONFIRMED = "confirmed"
BOOKING_STATUS_CANCELLED = "cancelled"
BOOKING_STATUS_COMPLETED = "completed"

ITEM_TYPE_TOUR = "tour"
ITEM_TYPE_UPSELL = "upsell"

PAYMENT_ISSUE_CAPACITY_EXCEEDED = "capacity_exceeded"
PAYMENT_ISSUE_PAID_AFTER_CANCELLATION = "paid_after_cancellation"

EVENT_PAYMENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_PAYMENT_FAILED = "payment_intent.payment_failed"
EVENT_PAYMENT_CANCELED = "payment_intent.canceled"

DEFAULT_SLOT_CAPACITY = 20
DEFAULT_MIN_GUESTS = 1
DEFAULT_MAX_GUESTS = 20
DEFAULT_CHILD_MAX_AGE = 12
DEFAULT_SEAT_CAPACITY = 10
DEFAULT_UPSELL_MAX_QUANTITY = 10
