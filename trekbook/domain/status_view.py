"""Booking status tracker.

One table maps every booking status to what the user-facing views render:
the status badge, the next thing the user has to do, and the position on
the progress indicator. The booking list, the dashboard and the admin
screens all read from here so they cannot drift apart.

Unknown statuses never raise; they get a neutral badge, no resume action
and progress step 0.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from trekbook.domain.booking_state import BookingStatus, PaymentMode, parse_status


@dataclass(frozen=True)
class StatusBadge:
    """Badge shown next to a booking."""

    badge_class: str
    label: str


@dataclass(frozen=True)
class ResumeAction:
    """Call to action that takes the user to the next step."""

    text: str
    link: str
    color: str
    icon: str


@dataclass(frozen=True)
class ProgressStep:
    """Position of a booking on the progress indicator."""

    step: int
    total: int
    label: str


UNKNOWN_BADGE = StatusBadge(badge_class="bg-gray-100 text-gray-800", label="unknown")

BADGE_CLASSES: dict[BookingStatus, str] = {
    BookingStatus.PENDING_PAYMENT: "bg-yellow-100 text-yellow-800",
    BookingStatus.PAYMENT_COMPLETED: "bg-blue-100 text-blue-800",
    BookingStatus.PAYMENT_CONFIRMED_PARTIAL: "bg-orange-100 text-orange-800",
    BookingStatus.CONFIRMED: "bg-green-100 text-green-800",
    BookingStatus.TREK_COMPLETED: "bg-purple-100 text-purple-800",
    BookingStatus.CANCELLED: "bg-red-100 text-red-800",
}

# (text, link template, color, icon)
RESUME_ACTIONS: dict[BookingStatus, tuple[str, str, str, str]] = {
    BookingStatus.PENDING_PAYMENT: (
        "Complete Payment",
        "/payment/{id}",
        "bg-yellow-600 hover:bg-yellow-700",
        "credit-card",
    ),
    BookingStatus.PAYMENT_CONFIRMED_PARTIAL: (
        "Pay Remaining Balance",
        "/payment/{id}",
        "bg-orange-600 hover:bg-orange-700",
        "wallet",
    ),
    BookingStatus.PAYMENT_COMPLETED: (
        "Add Participant Details",
        "/booking/{id}/participant-details",
        "bg-blue-600 hover:bg-blue-700",
        "users",
    ),
}

PROGRESS_TOTAL = 4

PROGRESS_STEPS: dict[BookingStatus, tuple[int, str]] = {
    BookingStatus.PENDING_PAYMENT: (1, "Payment Pending"),
    BookingStatus.PAYMENT_COMPLETED: (2, "Payment Completed"),
    BookingStatus.PAYMENT_CONFIRMED_PARTIAL: (2, "Partial Payment Received"),
    BookingStatus.CONFIRMED: (3, "Booking Confirmed"),
    BookingStatus.TREK_COMPLETED: (4, "Trek Completed"),
    BookingStatus.CANCELLED: (0, "Cancelled"),
}

# Admin action menu: action id -> statuses it is offered for
ADMIN_ACTIONS: dict[str, frozenset[BookingStatus]] = {
    "view": frozenset(BookingStatus),
    "reminder": frozenset({BookingStatus.CONFIRMED}),
    "partial-reminder": frozenset({BookingStatus.PAYMENT_CONFIRMED_PARTIAL}),
    "mark-partial-complete": frozenset({BookingStatus.PAYMENT_CONFIRMED_PARTIAL}),
    "confirmation": frozenset({BookingStatus.CONFIRMED, BookingStatus.TREK_COMPLETED}),
    "invoice": frozenset({BookingStatus.CONFIRMED, BookingStatus.TREK_COMPLETED}),
    "edit": frozenset({
        BookingStatus.PENDING_PAYMENT,
        BookingStatus.PAYMENT_COMPLETED,
        BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
        BookingStatus.CONFIRMED,
    }),
    "cancel": frozenset({
        BookingStatus.PENDING_PAYMENT,
        BookingStatus.PAYMENT_COMPLETED,
        BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
        BookingStatus.CONFIRMED,
    }),
}


def classify(status: str | BookingStatus | None) -> StatusBadge:
    """Return the badge for a status."""
    known = parse_status(status)
    if known is None:
        return UNKNOWN_BADGE
    return StatusBadge(badge_class=BADGE_CLASSES[known], label=known.value)


def resume_action(booking: Any) -> ResumeAction | None:
    """Return what the user must do next for a booking, if anything.

    Accepts ORM rows, API schemas and plain dicts such as the ones
    returned by the API client.
    """
    known = parse_status(_field(booking, "status"))
    if known not in RESUME_ACTIONS:
        return None
    text, link, color, icon = RESUME_ACTIONS[known]
    return ResumeAction(
        text=text,
        link=link.format(id=_field(booking, "id")),
        color=color,
        icon=icon,
    )


def progress(status: str | BookingStatus | None, include_completion: bool = True) -> ProgressStep:
    """Return the progress step for a status.

    With ``include_completion=False`` the indicator ends at confirmation
    and a completed trek is shown as the last step.
    """
    total = PROGRESS_TOTAL if include_completion else PROGRESS_TOTAL - 1
    known = parse_status(status)
    if known is None:
        return ProgressStep(step=0, total=total, label="Unknown")
    step, label = PROGRESS_STEPS[known]
    return ProgressStep(step=min(step, total), total=total, label=label)


def admin_actions(booking: Any) -> list[str]:
    """Return the admin menu action ids available for a booking."""
    known = parse_status(_field(booking, "status"))
    if known is None:
        return ["view"]

    is_partial = _payment_mode(booking) == PaymentMode.PARTIAL
    actions = []
    for action, statuses in ADMIN_ACTIONS.items():
        if known not in statuses:
            continue
        if action == "mark-partial-complete" and not is_partial:
            continue
        if action == "partial-reminder" and (not is_partial or _reminder_sent(booking)):
            continue
        actions.append(action)
    return actions


def _field(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def _payment_mode(booking: Any) -> str | None:
    mode = _field(booking, "payment_mode")
    return mode.value if isinstance(mode, PaymentMode) else mode


def _reminder_sent(booking: Any) -> bool:
    details = _field(booking, "partial_payment_details")
    return details is not None and bool(_field(details, "reminder_sent"))
