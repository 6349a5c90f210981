"""Booking-related database models."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trekbook.database import Base

if TYPE_CHECKING:
    from trekbook.models.user import User


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Booking(Base):
    """Trek booking model."""

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )  # TRK-XXXXXX
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )

    # Trek & batch (trek catalogue lives in another service)
    trek_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    trek_name: Mapped[str] = mapped_column(String(200), nullable=False)
    batch_start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    batch_end_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Contact person for the booking
    user_details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)  # name, email, phone
    number_of_participants: Mapped[int] = mapped_column(Integer, nullable=False)

    # Pricing (in paise - smallest currency unit)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_paid: Mapped[int] = mapped_column(Integer, default=0)
    currency: Mapped[str] = mapped_column(String(3), default="INR")

    # Status
    status: Mapped[str] = mapped_column(
        String(30), default="pending_payment", index=True
    )  # see trekbook.domain.booking_state.BookingStatus
    payment_status: Mapped[str] = mapped_column(
        String(20), default="pending"
    )  # pending, partially_paid, paid, refunded, failed
    payment_mode: Mapped[str] = mapped_column(String(10), default="full")  # full, partial

    # Partial payment (only when payment_mode == "partial")
    partial_initial_amount: Mapped[int | None] = mapped_column(Integer)
    partial_remaining_amount: Mapped[int | None] = mapped_column(Integer)
    partial_final_payment_due_date: Mapped[date | None] = mapped_column(Date, index=True)
    partial_reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    partial_reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    auto_cancel_on_due_date: Mapped[bool] = mapped_column(Boolean, default=False)

    # Trip logistics
    pickup_location: Mapped[str | None] = mapped_column(String(255))
    drop_location: Mapped[str | None] = mapped_column(String(255))
    additional_requests: Mapped[str | None] = mapped_column(Text)
    admin_remarks: Mapped[str | None] = mapped_column(Text)

    # Cancellation
    cancelled_by: Mapped[str | None] = mapped_column(String(10))  # user, admin, system
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="bookings")
    participants: Mapped[list["BookingParticipant"]] = relationship(
        "BookingParticipant",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingParticipant.position",
        lazy="selectin",
    )

    @property
    def partial_payment_details(self) -> dict[str, Any] | None:
        """Partial payment block, present only for partial-mode bookings."""
        if self.payment_mode != "partial":
            return None
        return {
            "initial_amount": self.partial_initial_amount,
            "remaining_amount": self.partial_remaining_amount,
            "final_payment_due_date": self.partial_final_payment_due_date,
            "reminder_sent": bool(self.partial_reminder_sent),
            "reminder_sent_at": self.partial_reminder_sent_at,
            "auto_cancel_on_due_date": bool(self.auto_cancel_on_due_date),
        }

    @property
    def balance_due(self) -> int:
        return self.total_price - (self.amount_paid or 0)


class BookingParticipant(Base):
    """Participant travelling on a booking."""

    __tablename__ = "booking_participants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    age: Mapped[int | None] = mapped_column(Integer)
    gender: Mapped[str | None] = mapped_column(String(10))  # Male, Female, Other
    contact_number: Mapped[str | None] = mapped_column(String(20))
    emergency_contact: Mapped[dict[str, Any] | None] = mapped_column(JSON)  # name, relationship, phone
    medical_conditions: Mapped[str | None] = mapped_column(Text)
    special_requests: Mapped[str | None] = mapped_column(Text)
    custom_field_responses: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    # Relationships
    booking: Mapped["Booking"] = relationship("Booking", back_populates="participants")
