"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from trekbook.domain import status_view
from trekbook.domain.booking_state import BookingStatus, PaymentMode
from trekbook.domain.status_view import ProgressStep, ResumeAction, StatusBadge


class UserDetails(BaseModel):
    """Contact person for a booking."""

    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str = Field(..., min_length=5, max_length=20)


class EmergencyContact(BaseModel):
    name: str | None = Field(None, max_length=200)
    relationship: str | None = Field(None, max_length=50)
    phone: str | None = Field(None, max_length=20)


class CustomFieldResponse(BaseModel):
    """Answer to a trek-specific custom participant field."""

    field_id: str
    field_name: str
    field_type: str = "text"
    value: Any = None
    options: list[str] = []


class ParticipantBase(BaseModel):
    """Participant travelling on a booking."""

    name: str = Field(..., min_length=1, max_length=200)
    age: int | None = Field(None, ge=0, le=120)
    gender: Literal["Male", "Female", "Other"] | None = None
    contact_number: str | None = Field(None, max_length=20)
    emergency_contact: EmergencyContact | None = None
    medical_conditions: str | None = Field(None, max_length=2000)
    special_requests: str | None = Field(None, max_length=1000)
    custom_field_responses: list[CustomFieldResponse] = []


class ParticipantResponse(ParticipantBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    position: int


class ParticipantsUpdate(BaseModel):
    """Replacement participant list."""

    participants: list[ParticipantBase]


class PartialPaymentRequest(BaseModel):
    """Partial payment terms chosen at checkout."""

    initial_amount: int = Field(..., gt=0)
    final_payment_due_date: date
    auto_cancel_on_due_date: bool = False


class PartialPaymentDetails(BaseModel):
    initial_amount: int | None
    remaining_amount: int | None
    final_payment_due_date: date | None
    reminder_sent: bool = False
    reminder_sent_at: datetime | None = None
    auto_cancel_on_due_date: bool = False


class BookingCreate(BaseModel):
    """Schema for creating a booking at checkout."""

    trek_id: UUID
    trek_name: str = Field(..., min_length=1, max_length=200)
    batch_start_date: date
    batch_end_date: date
    number_of_participants: int = Field(..., ge=1, le=50)
    total_price: int = Field(..., ge=0)
    user_details: UserDetails
    payment_mode: PaymentMode = PaymentMode.FULL
    partial_payment: PartialPaymentRequest | None = None
    participants: list[ParticipantBase] = []
    pickup_location: str | None = Field(None, max_length=255)
    drop_location: str | None = Field(None, max_length=255)
    additional_requests: str | None = Field(None, max_length=1000)

    @field_validator("batch_end_date")
    @classmethod
    def validate_batch_end(cls, v: date, info) -> date:
        start = info.data.get("batch_start_date")
        if start and v < start:
            raise ValueError("batch_end_date must not be before batch_start_date")
        return v

    @model_validator(mode="after")
    def validate_partial_payment(self) -> "BookingCreate":
        if self.payment_mode == PaymentMode.PARTIAL and self.partial_payment is None:
            raise ValueError("partial_payment is required when payment_mode is partial")
        if self.payment_mode == PaymentMode.FULL and self.partial_payment is not None:
            raise ValueError("partial_payment is only allowed when payment_mode is partial")
        if len(self.participants) > self.number_of_participants:
            raise ValueError("More participants than booked seats")
        return self


class BookingResponse(BaseModel):
    """Schema for booking response, with its status tracker view."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_number: str
    user_id: UUID

    # Trek
    trek_id: UUID
    trek_name: str
    batch_start_date: date
    batch_end_date: date

    user_details: UserDetails
    number_of_participants: int
    participants: list[ParticipantResponse]

    # Pricing
    total_price: int
    amount_paid: int
    currency: str

    # Status
    status: str
    payment_status: str
    payment_mode: str
    partial_payment_details: PartialPaymentDetails | None

    pickup_location: str | None
    drop_location: str | None
    additional_requests: str | None

    # Cancellation
    cancelled_by: str | None
    cancellation_reason: str | None

    # Timestamps
    confirmed_at: datetime | None
    cancelled_at: datetime | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def badge(self) -> StatusBadge:
        return status_view.classify(self.status)

    @computed_field
    @property
    def resume_action(self) -> ResumeAction | None:
        return status_view.resume_action(self)

    @computed_field
    @property
    def progress(self) -> ProgressStep:
        return status_view.progress(self.status)


class BookingCreatedResponse(BaseModel):
    booking: BookingResponse


class AdminBookingResponse(BookingResponse):
    """Booking as seen on admin screens."""

    admin_remarks: str | None

    @computed_field
    @property
    def admin_actions(self) -> list[str]:
        return status_view.admin_actions(self)


class AdminBookingListResponse(BaseModel):
    """Schema for paginated admin booking list."""

    bookings: list[AdminBookingResponse]
    total: int
    page: int
    page_size: int


class BookingCancelRequest(BaseModel):
    """Schema for cancelling a booking."""

    reason: str = Field(..., min_length=5, max_length=1000)


class AdminBookingUpdate(BaseModel):
    """Admin edit of a booking. Only fields that are set are applied."""

    status: BookingStatus | None = None
    payment_status: Literal["pending", "partially_paid", "paid", "refunded", "failed"] | None = None
    admin_remarks: str | None = Field(None, max_length=2000)
    total_price: int | None = Field(None, ge=0)
    cancellation_reason: str | None = Field(None, max_length=1000)


class PaymentRecordRequest(BaseModel):
    """Payment received for a booking, recorded by an admin."""

    amount: int = Field(..., gt=0)
    method: str = Field(default="manual", max_length=50)
    reference: str | None = Field(None, max_length=100)


class StatusInfo(BaseModel):
    """One entry of the status catalog."""

    status: BookingStatus
    badge: StatusBadge
    progress: ProgressStep
    next_statuses: list[BookingStatus]
    terminal: bool
