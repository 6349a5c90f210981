"""Booking lifecycle service.

All writes to a booking's status, payment amounts and participants go
through here so the lifecycle rules hold no matter which route or job
triggers the change.
"""

import logging
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from trekbook.config import settings
from trekbook.core.exceptions import InvalidBookingStatus, NotFoundError, ValidationError
from trekbook.domain.booking_state import (
    BookingStatus,
    PaymentMode,
    PaymentStatus,
    assert_booking_transition,
    is_terminal,
    parse_status,
)
from trekbook.models.booking import Booking, BookingParticipant
from trekbook.models.user import User
from trekbook.schemas.booking import AdminBookingUpdate, BookingCreate, ParticipantBase
from trekbook.services.audit_service import audit_service
from trekbook.utils.booking_number import generate_booking_number

logger = logging.getLogger(__name__)


def _actor_id(actor: User | None) -> UUID | None:
    return actor.id if actor is not None else None


def _participant_rows(participants: list[ParticipantBase]) -> list[BookingParticipant]:
    return [
        BookingParticipant(position=position, **participant.model_dump(mode="json"))
        for position, participant in enumerate(participants)
    ]


class BookingService:
    """Applies lifecycle changes to bookings."""

    # ==================== QUERIES ====================

    async def get_booking(self, db: AsyncSession, booking_id: UUID) -> Booking:
        result = await db.execute(select(Booking).where(Booking.id == booking_id))
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def list_user_bookings(self, db: AsyncSession, user_id: UUID) -> list[Booking]:
        result = await db.execute(
            select(Booking)
            .where(Booking.user_id == user_id)
            .order_by(Booking.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_bookings(
        self,
        db: AsyncSession,
        status: BookingStatus | None = None,
        trek_id: UUID | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Booking], int]:
        """List bookings for admin screens, newest first."""
        query = select(Booking)
        if status:
            query = query.where(Booking.status == status.value)
        if trek_id:
            query = query.where(Booking.trek_id == trek_id)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                Booking.booking_number.ilike(pattern) | Booking.trek_name.ilike(pattern)
            )

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        offset = (page - 1) * page_size
        query = query.order_by(Booking.created_at.desc()).offset(offset).limit(page_size)
        result = await db.execute(query)
        return list(result.scalars().all()), total

    # ==================== CREATION ====================

    async def create_booking(self, db: AsyncSession, user: User, data: BookingCreate) -> Booking:
        """Create a booking at checkout, awaiting payment."""
        partial = data.partial_payment
        if partial is not None:
            if partial.initial_amount >= data.total_price:
                raise ValidationError("Initial amount must be less than the total price")
            if partial.final_payment_due_date > data.batch_start_date:
                raise ValidationError("Final payment must be due before the trek starts")

        booking = Booking(
            booking_number=await generate_booking_number(db),
            user_id=user.id,
            trek_id=data.trek_id,
            trek_name=data.trek_name,
            batch_start_date=data.batch_start_date,
            batch_end_date=data.batch_end_date,
            user_details=data.user_details.model_dump(),
            number_of_participants=data.number_of_participants,
            total_price=data.total_price,
            amount_paid=0,
            currency=settings.currency,
            status=BookingStatus.PENDING_PAYMENT.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_mode=data.payment_mode.value,
            partial_initial_amount=partial.initial_amount if partial else None,
            partial_remaining_amount=data.total_price if partial else None,
            partial_final_payment_due_date=partial.final_payment_due_date if partial else None,
            partial_reminder_sent=False,
            auto_cancel_on_due_date=partial.auto_cancel_on_due_date if partial else False,
            pickup_location=data.pickup_location,
            drop_location=data.drop_location,
            additional_requests=data.additional_requests,
            participants=_participant_rows(data.participants),
        )
        db.add(booking)
        await db.flush()

        await audit_service.log_booking_action(
            db,
            user_id=user.id,
            action="booking_create",
            booking_id=booking.id,
            new_values={
                "status": booking.status,
                "payment_mode": booking.payment_mode,
                "total_price": booking.total_price,
            },
        )
        logger.info(f"Booking {booking.booking_number} created for trek {booking.trek_name}")
        return booking

    # ==================== PARTICIPANTS ====================

    async def replace_participants(
        self,
        db: AsyncSession,
        booking: Booking,
        participants: list[ParticipantBase],
        actor: User | None,
    ) -> Booking:
        """Replace the participant list of a non-terminal booking."""
        if is_terminal(booking.status):
            raise InvalidBookingStatus(
                f"Participants cannot be changed once a booking is {booking.status}"
            )
        if len(participants) > booking.number_of_participants:
            raise ValidationError(
                f"Booking has {booking.number_of_participants} seats, "
                f"got {len(participants)} participants"
            )

        old_count = len(booking.participants)
        booking.participants = _participant_rows(participants)
        await db.flush()

        await audit_service.log_booking_action(
            db,
            user_id=_actor_id(actor),
            action="booking_participants_update",
            booking_id=booking.id,
            old_values={"participants": old_count},
            new_values={"participants": len(participants)},
        )
        return booking

    # ==================== PAYMENTS ====================

    async def record_payment(
        self,
        db: AsyncSession,
        booking: Booking,
        amount: int,
        actor: User | None,
        method: str = "manual",
        reference: str | None = None,
    ) -> Booking:
        """Record money received and advance the booking accordingly.

        A full payment moves a pending booking to payment_completed, an
        initial partial payment to payment_confirmed_partial, and paying off
        the remaining balance confirms the booking.
        """
        status = parse_status(booking.status)
        old_values = self._snapshot(booking)

        if status == BookingStatus.PENDING_PAYMENT:
            balance = booking.balance_due
            if amount > balance:
                raise ValidationError(f"Payment of {amount} exceeds the amount due ({balance})")
            if booking.payment_mode == PaymentMode.FULL.value or amount == balance:
                if amount < balance:
                    raise ValidationError(f"Full payment of {balance} is required")
                booking.amount_paid += amount
                target = BookingStatus.PAYMENT_COMPLETED
            else:
                if amount < (booking.partial_initial_amount or 0):
                    raise ValidationError(
                        f"Initial payment must be at least {booking.partial_initial_amount}"
                    )
                booking.amount_paid += amount
                booking.partial_remaining_amount = booking.total_price - booking.amount_paid
                target = BookingStatus.PAYMENT_CONFIRMED_PARTIAL

        elif status == BookingStatus.PAYMENT_CONFIRMED_PARTIAL:
            remaining = booking.partial_remaining_amount or 0
            if amount > remaining:
                raise ValidationError(f"Payment of {amount} exceeds the remaining balance ({remaining})")
            booking.amount_paid += amount
            booking.partial_remaining_amount = remaining - amount
            target = (
                BookingStatus.CONFIRMED
                if booking.partial_remaining_amount == 0
                else BookingStatus.PAYMENT_CONFIRMED_PARTIAL
            )

        else:
            raise InvalidBookingStatus(f"Cannot record a payment for a {booking.status} booking")

        if target.value != booking.status:
            self._apply_status(booking, target)

        await db.flush()
        await audit_service.log_booking_action(
            db,
            user_id=_actor_id(actor),
            action="payment_record",
            booking_id=booking.id,
            old_values=old_values,
            new_values={
                **self._snapshot(booking),
                "amount": amount,
                "method": method,
                "reference": reference,
            },
        )
        logger.info(
            f"Payment of {amount} recorded for booking {booking.booking_number}: "
            f"status={booking.status}, balance={booking.balance_due}"
        )
        return booking

    async def mark_partial_complete(
        self,
        db: AsyncSession,
        booking: Booking,
        actor: User | None,
    ) -> Booking:
        """Treat the remaining balance of a partial booking as received."""
        if parse_status(booking.status) != BookingStatus.PAYMENT_CONFIRMED_PARTIAL:
            raise InvalidBookingStatus("Only bookings awaiting their remaining balance can be settled")
        old_values = self._snapshot(booking)

        self._apply_status(booking, BookingStatus.CONFIRMED)
        await db.flush()

        await audit_service.log_booking_action(
            db,
            user_id=_actor_id(actor),
            action="partial_payment_settle",
            booking_id=booking.id,
            old_values=old_values,
            new_values=self._snapshot(booking),
        )
        logger.info(f"Partial payment settled for booking {booking.booking_number}")
        return booking

    async def mark_reminder_sent(self, db: AsyncSession, booking: Booking) -> Booking:
        booking.partial_reminder_sent = True
        booking.partial_reminder_sent_at = datetime.now(UTC)
        await db.flush()
        return booking

    # ==================== STATUS ====================

    async def change_status(
        self,
        db: AsyncSession,
        booking: Booking,
        target: BookingStatus | str,
        actor: User | None,
        today: date | None = None,
    ) -> Booking:
        """Move a booking to another status if the transition table allows it."""
        target_status = parse_status(target)
        if target_status is None:
            raise ValidationError(f"Unknown booking status: {target}")
        if target_status.value == booking.status:
            return booking
        if target_status == BookingStatus.CANCELLED:
            return await self.cancel_booking(
                db, booking, actor, reason="Cancelled by admin", cancelled_by="admin"
            )

        old_values = self._snapshot(booking)
        self._apply_status(booking, target_status, today=today)
        await db.flush()

        await audit_service.log_booking_action(
            db,
            user_id=_actor_id(actor),
            action="booking_status_change",
            booking_id=booking.id,
            old_values=old_values,
            new_values=self._snapshot(booking),
        )
        logger.info(
            f"Booking {booking.booking_number} moved "
            f"{old_values['status']} → {booking.status}"
        )
        return booking

    async def cancel_booking(
        self,
        db: AsyncSession,
        booking: Booking,
        actor: User | None,
        reason: str,
        cancelled_by: str,
    ) -> Booking:
        """Cancel a non-terminal booking."""
        old_values = self._snapshot(booking)
        self._apply_status(booking, BookingStatus.CANCELLED)
        booking.cancelled_by = cancelled_by
        booking.cancellation_reason = reason
        await db.flush()

        await audit_service.log_booking_action(
            db,
            user_id=_actor_id(actor),
            action="booking_cancel",
            booking_id=booking.id,
            old_values=old_values,
            new_values={**self._snapshot(booking), "cancelled_by": cancelled_by, "reason": reason},
        )
        logger.info(f"Booking {booking.booking_number} cancelled by {cancelled_by}: {reason}")
        return booking

    async def update_admin_fields(
        self,
        db: AsyncSession,
        booking: Booking,
        update: AdminBookingUpdate,
        actor: User,
    ) -> Booking:
        """Apply an admin edit: price, status, payment status and remarks."""
        fields = update.model_fields_set
        old_values = {**self._snapshot(booking), "admin_remarks": booking.admin_remarks}

        if "total_price" in fields and update.total_price is not None:
            self._adjust_total_price(booking, update.total_price)

        if "status" in fields and update.status is not None and update.status.value != booking.status:
            if update.status == BookingStatus.CANCELLED:
                self._apply_status(booking, BookingStatus.CANCELLED)
                booking.cancelled_by = "admin"
                booking.cancellation_reason = update.cancellation_reason or "Cancelled by admin"
            else:
                self._apply_status(booking, update.status)

        if "payment_status" in fields and update.payment_status is not None:
            booking.payment_status = update.payment_status

        if "admin_remarks" in fields:
            booking.admin_remarks = update.admin_remarks

        await db.flush()
        await audit_service.log_booking_action(
            db,
            user_id=actor.id,
            action="booking_update",
            booking_id=booking.id,
            old_values=old_values,
            new_values={**self._snapshot(booking), "admin_remarks": booking.admin_remarks},
        )
        logger.info(f"Admin {actor.email} updated booking {booking.booking_number}")
        return booking

    # ==================== INTERNALS ====================

    def _apply_status(
        self,
        booking: Booking,
        target: BookingStatus,
        today: date | None = None,
    ) -> None:
        """Guard the transition and apply its side effects in memory."""
        current = parse_status(booking.status)
        assert_booking_transition(booking.status, target)
        now = datetime.now(UTC)

        if target == BookingStatus.PAYMENT_COMPLETED:
            self._settle_in_full(booking)

        elif target == BookingStatus.PAYMENT_CONFIRMED_PARTIAL:
            if booking.payment_mode != PaymentMode.PARTIAL.value:
                raise ValidationError("Only partial-payment bookings can be marked as partially paid")
            if not booking.amount_paid:
                booking.amount_paid = booking.partial_initial_amount or 0
            booking.partial_remaining_amount = booking.total_price - booking.amount_paid
            if booking.partial_remaining_amount <= 0:
                raise ValidationError("A partially paid booking must have a remaining balance")
            booking.payment_status = PaymentStatus.PARTIALLY_PAID.value

        elif target == BookingStatus.CONFIRMED:
            if current == BookingStatus.PAYMENT_CONFIRMED_PARTIAL:
                self._settle_in_full(booking)
            booking.confirmed_at = now

        elif target == BookingStatus.TREK_COMPLETED:
            today = today or datetime.now(UTC).date()
            if booking.batch_end_date > today:
                raise ValidationError(
                    f"Trek cannot be completed before the batch ends on {booking.batch_end_date}"
                )
            booking.completed_at = now

        elif target == BookingStatus.CANCELLED:
            booking.cancelled_at = now

        booking.status = target.value

    def _settle_in_full(self, booking: Booking) -> None:
        booking.amount_paid = booking.total_price
        if booking.payment_mode == PaymentMode.PARTIAL.value:
            booking.partial_remaining_amount = 0
        booking.payment_status = PaymentStatus.PAID.value

    def _adjust_total_price(self, booking: Booking, total_price: int) -> None:
        if total_price < (booking.amount_paid or 0):
            raise ValidationError(
                f"Total price cannot be below the amount already paid ({booking.amount_paid})"
            )
        booking.total_price = total_price
        if booking.payment_mode != PaymentMode.PARTIAL.value or is_terminal(booking.status):
            return
        status = parse_status(booking.status)
        if status in (BookingStatus.PENDING_PAYMENT, BookingStatus.PAYMENT_CONFIRMED_PARTIAL):
            remaining = total_price - booking.amount_paid
            if status == BookingStatus.PAYMENT_CONFIRMED_PARTIAL and remaining <= 0:
                raise ValidationError(
                    "Adjusted price leaves no balance; mark the partial payment complete instead"
                )
            booking.partial_remaining_amount = remaining

    @staticmethod
    def _snapshot(booking: Booking) -> dict[str, Any]:
        return {
            "status": booking.status,
            "payment_status": booking.payment_status,
            "amount_paid": booking.amount_paid,
            "total_price": booking.total_price,
            "remaining_amount": booking.partial_remaining_amount,
        }


booking_service = BookingService()
