"""Admin booking management endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from trekbook.api.deps import get_admin_booking, get_current_admin, get_db
from trekbook.core.exceptions import ExternalServiceError, InvalidBookingStatus
from trekbook.domain import status_view
from trekbook.domain.booking_state import BookingStatus, PaymentMode
from trekbook.models.booking import Booking
from trekbook.models.user import User
from trekbook.schemas.booking import (
    AdminBookingListResponse,
    AdminBookingResponse,
    AdminBookingUpdate,
    PaymentRecordRequest,
)
from trekbook.services.audit_service import audit_service
from trekbook.services.booking_service import booking_service
from trekbook.services.invoice_service import invoice_service
from trekbook.services.notification_service import notification_service

router = APIRouter()


@router.get("/bookings", response_model=AdminBookingListResponse)
async def list_bookings(
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
    trek_id: UUID | None = None,
    search: str | None = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> AdminBookingListResponse:
    """List all bookings, optionally filtered by status, trek or search text."""
    bookings, total = await booking_service.list_bookings(
        db,
        status=status_filter,
        trek_id=trek_id,
        search=search,
        page=page,
        page_size=page_size,
    )
    return AdminBookingListResponse(
        bookings=[AdminBookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/bookings/{booking_id}", response_model=AdminBookingResponse)
async def get_booking(
    booking: Annotated[Booking, Depends(get_admin_booking)],
) -> Booking:
    """Get any booking with its admin action menu."""
    return booking


@router.patch("/bookings/{booking_id}", response_model=AdminBookingResponse)
async def update_booking(
    request: AdminBookingUpdate,
    booking: Annotated[Booking, Depends(get_admin_booking)],
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Update status, payment status, remarks or price of a booking.

    Status changes must follow the booking transition table.
    """
    return await booking_service.update_admin_fields(db, booking, request, admin)


@router.post("/bookings/{booking_id}/payments", response_model=AdminBookingResponse)
async def record_payment(
    request: PaymentRecordRequest,
    booking: Annotated[Booking, Depends(get_admin_booking)],
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Record a payment received outside the gateway."""
    return await booking_service.record_payment(
        db,
        booking,
        request.amount,
        admin,
        method=request.method,
        reference=request.reference,
    )


@router.post("/bookings/{booking_id}/mark-partial-complete", response_model=AdminBookingResponse)
async def mark_partial_complete(
    booking: Annotated[Booking, Depends(get_admin_booking)],
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Mark the remaining balance of a partial booking as received."""
    return await booking_service.mark_partial_complete(db, booking, admin)


@router.post("/bookings/{booking_id}/partial-reminder", response_model=AdminBookingResponse)
async def send_partial_reminder(
    booking: Annotated[Booking, Depends(get_admin_booking)],
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Email the remaining-balance reminder for a partial booking."""
    if (
        booking.status != BookingStatus.PAYMENT_CONFIRMED_PARTIAL.value
        or booking.payment_mode != PaymentMode.PARTIAL.value
    ):
        raise InvalidBookingStatus("Reminders are only sent for bookings with a remaining balance")

    sent = await notification_service.send_partial_payment_reminder(booking)
    if not sent:
        raise ExternalServiceError("email", "Reminder could not be delivered")

    await booking_service.mark_reminder_sent(db, booking)
    await audit_service.log_booking_action(
        db,
        user_id=admin.id,
        action="partial_payment_reminder",
        booking_id=booking.id,
        new_values={"reminder_sent": True},
    )
    return booking


# ==================== BOOKING EMAILS ====================


def _require_action(booking: Booking, action: str) -> None:
    if action not in status_view.admin_actions(booking):
        raise InvalidBookingStatus(f"'{action}' is not available for a {booking.status} booking")


@router.post("/bookings/{booking_id}/send-reminder", response_model=AdminBookingResponse)
async def send_booking_reminder(
    booking: Annotated[Booking, Depends(get_admin_booking)],
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Email an upcoming-trek reminder for a confirmed booking."""
    _require_action(booking, "reminder")

    if not await notification_service.send_booking_reminder(booking):
        raise ExternalServiceError("email", "Reminder could not be delivered")

    await audit_service.log_booking_action(
        db, user_id=admin.id, action="booking_reminder_email", booking_id=booking.id
    )
    return booking


@router.post("/bookings/{booking_id}/send-confirmation", response_model=AdminBookingResponse)
async def send_booking_confirmation(
    booking: Annotated[Booking, Depends(get_admin_booking)],
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Resend the booking confirmation email."""
    _require_action(booking, "confirmation")

    if not await notification_service.send_booking_confirmation(booking):
        raise ExternalServiceError("email", "Confirmation could not be delivered")

    await audit_service.log_booking_action(
        db, user_id=admin.id, action="booking_confirmation_email", booking_id=booking.id
    )
    return booking


@router.post("/bookings/{booking_id}/send-invoice", response_model=AdminBookingResponse)
async def send_booking_invoice(
    booking: Annotated[Booking, Depends(get_admin_booking)],
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Email the PDF invoice to the booking contact."""
    _require_action(booking, "invoice")

    filename = invoice_service.filename(booking)
    pdf = invoice_service.render(booking)
    if not await notification_service.send_invoice(booking, filename, pdf):
        raise ExternalServiceError("email", "Invoice could not be delivered")

    await audit_service.log_booking_action(
        db,
        user_id=admin.id,
        action="booking_invoice_email",
        booking_id=booking.id,
        new_values={"filename": filename},
    )
    return booking
