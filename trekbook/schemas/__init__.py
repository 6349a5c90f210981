"""Pydantic schemas for API validation."""

from trekbook.schemas.booking import (
    AdminBookingListResponse,
    AdminBookingResponse,
    AdminBookingUpdate,
    BookingCancelRequest,
    BookingCreate,
    BookingCreatedResponse,
    BookingResponse,
    ParticipantsUpdate,
    PaymentRecordRequest,
    StatusInfo,
)

__all__ = [
    "AdminBookingListResponse",
    "AdminBookingResponse",
    "AdminBookingUpdate",
    "BookingCancelRequest",
    "BookingCreate",
    "BookingCreatedResponse",
    "BookingResponse",
    "ParticipantsUpdate",
    "PaymentRecordRequest",
    "StatusInfo",
]
