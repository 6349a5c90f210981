"""Booking endpoints for travellers."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from trekbook.api.deps import get_current_user, get_db, get_owned_booking
from trekbook.domain import status_view
from trekbook.domain.booking_state import BookingStatus, allowed_transitions, is_terminal
from trekbook.models.booking import Booking
from trekbook.models.user import User
from trekbook.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingCreatedResponse,
    BookingResponse,
    ParticipantsUpdate,
    StatusInfo,
)
from trekbook.services.booking_service import booking_service
from trekbook.services.invoice_service import invoice_service

router = APIRouter()


@router.get("/statuses", response_model=list[StatusInfo])
async def get_status_catalog() -> list[StatusInfo]:
    """Describe every booking status the way the views render it."""
    return [
        StatusInfo(
            status=booking_status,
            badge=status_view.classify(booking_status),
            progress=status_view.progress(booking_status),
            next_statuses=sorted(allowed_transitions(booking_status), key=lambda s: s.value),
            terminal=is_terminal(booking_status),
        )
        for booking_status in BookingStatus
    ]


@router.get("/user/mybookings", response_model=list[BookingResponse])
async def get_my_bookings(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[Booking]:
    """Get all bookings of the current user, newest first."""
    return await booking_service.list_user_bookings(db, current_user.id)


@router.post("", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingCreatedResponse:
    """Create a booking at checkout. It starts in pending_payment."""
    booking = await booking_service.create_booking(db, current_user, booking_data)
    return BookingCreatedResponse(booking=BookingResponse.model_validate(booking))


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking: Annotated[Booking, Depends(get_owned_booking)],
) -> Booking:
    """Get a booking by ID."""
    return booking


@router.put("/{booking_id}/participants", response_model=BookingResponse)
async def update_participants(
    request: ParticipantsUpdate,
    booking: Annotated[Booking, Depends(get_owned_booking)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Replace the participant list of a booking."""
    return await booking_service.replace_participants(
        db, booking, request.participants, current_user
    )


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    request: BookingCancelRequest,
    booking: Annotated[Booking, Depends(get_owned_booking)],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Booking:
    """Cancel a booking."""
    cancelled_by = "user" if booking.user_id == current_user.id else "admin"
    return await booking_service.cancel_booking(
        db, booking, current_user, reason=request.reason, cancelled_by=cancelled_by
    )


@router.get("/{booking_id}/invoice")
async def download_invoice(
    booking: Annotated[Booking, Depends(get_owned_booking)],
) -> Response:
    """Download the booking invoice as a PDF."""
    return Response(
        content=invoice_service.render(booking),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={invoice_service.filename(booking)}"},
    )
