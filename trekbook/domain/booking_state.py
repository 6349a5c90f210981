"""Booking state machine."""

from enum import Enum

from trekbook.core.exceptions import InvalidStatusTransition


class BookingStatus(str, Enum):
    """Lifecycle status of a trek booking."""

    PENDING_PAYMENT = "pending_payment"
    PAYMENT_COMPLETED = "payment_completed"
    PAYMENT_CONFIRMED_PARTIAL = "payment_confirmed_partial"
    CONFIRMED = "confirmed"
    TREK_COMPLETED = "trek_completed"
    CANCELLED = "cancelled"


class PaymentMode(str, Enum):
    """How the trek price is collected."""

    FULL = "full"
    PARTIAL = "partial"


class PaymentStatus(str, Enum):
    """Money-side status tracked next to the booking status."""

    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING_PAYMENT: frozenset({
        BookingStatus.PAYMENT_COMPLETED,
        BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.PAYMENT_COMPLETED: frozenset({
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.PAYMENT_CONFIRMED_PARTIAL: frozenset({
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.TREK_COMPLETED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.TREK_COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in BOOKING_TRANSITIONS.items() if not targets
)

# Happy path of a fully paid booking
HAPPY_PATH = (
    BookingStatus.PENDING_PAYMENT,
    BookingStatus.PAYMENT_COMPLETED,
    BookingStatus.CONFIRMED,
    BookingStatus.TREK_COMPLETED,
)


def parse_status(value: str | BookingStatus | None) -> BookingStatus | None:
    """Return the enum member for a raw status string, or None if unknown."""
    if isinstance(value, BookingStatus):
        return value
    if not isinstance(value, str):
        return None
    try:
        return BookingStatus(value.strip().lower())
    except ValueError:
        return None


def allowed_transitions(current: str | BookingStatus) -> frozenset[BookingStatus]:
    status = parse_status(current)
    if status is None:
        return frozenset()
    return BOOKING_TRANSITIONS[status]


def can_transition(current: str | BookingStatus, target: str | BookingStatus) -> bool:
    target_status = parse_status(target)
    return target_status is not None and target_status in allowed_transitions(current)


def is_terminal(status: str | BookingStatus) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def assert_booking_transition(current: str | BookingStatus, target: str | BookingStatus) -> None:
    if not can_transition(current, target):
        raise InvalidStatusTransition(_value(current), _value(target))


def _value(status: str | BookingStatus) -> str:
    return status.value if isinstance(status, BookingStatus) else str(status)
