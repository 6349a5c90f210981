"""Tests for the booking lifecycle service."""

import pytest
from sqlalchemy import select

from trekbook.core.exceptions import InvalidBookingStatus, InvalidStatusTransition, ValidationError
from trekbook.domain.booking_state import BookingStatus
from trekbook.models.admin import AuditLog
from trekbook.models.user import User
from trekbook.schemas.booking import AdminBookingUpdate, BookingCreate, ParticipantBase
from trekbook.services.audit_service import audit_service
from trekbook.services.booking_service import booking_service
from tests.conftest import upcoming_booking


@pytest.fixture
async def user(db):
    user = User(email="asha@example.com", name="Asha")
    db.add(user)
    await db.flush()
    return user


async def create(db, user, **kwargs):
    return await booking_service.create_booking(db, user, BookingCreate(**upcoming_booking(**kwargs)))


async def audit_actions(db, booking):
    await db.flush()
    result = await db.execute(select(AuditLog.action).where(AuditLog.resource_id == booking.id))
    return sorted(result.scalars().all())


# ==================== CREATION ====================


async def test_create_booking_starts_pending(db, user):
    booking = await create(db, user)

    assert booking.status == BookingStatus.PENDING_PAYMENT.value
    assert booking.booking_number.startswith("TRK-")
    assert len(booking.booking_number) == 10
    assert booking.amount_paid == 0
    assert booking.payment_status == "pending"
    assert booking.currency == "INR"
    assert booking.partial_payment_details is None
    assert await audit_actions(db, booking) == ["booking_create"]


async def test_create_partial_booking(db, user):
    booking = await create(db, user, partial=True)

    details = booking.partial_payment_details
    assert details["initial_amount"] == 300_000
    assert details["remaining_amount"] == 1_000_000
    assert details["reminder_sent"] is False


async def test_initial_amount_must_be_below_total(db, user):
    with pytest.raises(ValidationError):
        await create(db, user, partial=True, initial_amount=1_000_000)


async def test_partial_due_date_must_precede_trek(db, user):
    payload = upcoming_booking(partial=True)
    payload["partial_payment"]["final_payment_due_date"] = payload["batch_end_date"]

    with pytest.raises(ValidationError):
        await booking_service.create_booking(db, user, BookingCreate(**payload))


# ==================== PAYMENTS ====================


async def test_full_payment_completes_booking(db, user):
    booking = await create(db, user)

    await booking_service.record_payment(db, booking, 1_000_000, user, reference="UTR123")

    assert booking.status == BookingStatus.PAYMENT_COMPLETED.value
    assert booking.payment_status == "paid"
    assert booking.balance_due == 0
    assert await audit_actions(db, booking) == ["booking_create", "payment_record"]


async def test_full_payment_must_cover_price(db, user):
    booking = await create(db, user)

    with pytest.raises(ValidationError):
        await booking_service.record_payment(db, booking, 500_000, user)
    assert booking.status == BookingStatus.PENDING_PAYMENT.value
    assert booking.amount_paid == 0


async def test_partial_payment_flow(db, user):
    booking = await create(db, user, partial=True)

    await booking_service.record_payment(db, booking, 300_000, user)
    assert booking.status == BookingStatus.PAYMENT_CONFIRMED_PARTIAL.value
    assert booking.payment_status == "partially_paid"
    assert booking.partial_remaining_amount == 700_000

    await booking_service.record_payment(db, booking, 200_000, user)
    assert booking.status == BookingStatus.PAYMENT_CONFIRMED_PARTIAL.value
    assert booking.partial_remaining_amount == 500_000

    await booking_service.record_payment(db, booking, 500_000, user)
    assert booking.status == BookingStatus.CONFIRMED.value
    assert booking.payment_status == "paid"
    assert booking.amount_paid == booking.total_price
    assert booking.confirmed_at is not None


async def test_partial_payment_below_initial_amount(db, user):
    booking = await create(db, user, partial=True)

    with pytest.raises(ValidationError):
        await booking_service.record_payment(db, booking, 100_000, user)


async def test_payment_cannot_exceed_remaining_balance(db, user):
    booking = await create(db, user, partial=True)
    await booking_service.record_payment(db, booking, 300_000, user)

    with pytest.raises(ValidationError):
        await booking_service.record_payment(db, booking, 800_000, user)
    assert booking.partial_remaining_amount == 700_000


async def test_no_payments_on_confirmed_booking(db, user):
    booking = await create(db, user)
    await booking_service.record_payment(db, booking, 1_000_000, user)
    await booking_service.change_status(db, booking, BookingStatus.CONFIRMED, user)

    with pytest.raises(InvalidBookingStatus):
        await booking_service.record_payment(db, booking, 1, user)


async def test_mark_partial_complete(db, user):
    booking = await create(db, user, partial=True)
    await booking_service.record_payment(db, booking, 300_000, user)

    await booking_service.mark_partial_complete(db, booking, user)

    assert booking.status == BookingStatus.CONFIRMED.value
    assert booking.amount_paid == 1_000_000
    assert booking.partial_remaining_amount == 0


async def test_mark_partial_complete_requires_partial_booking(db, user):
    booking = await create(db, user)

    with pytest.raises(InvalidBookingStatus):
        await booking_service.mark_partial_complete(db, booking, user)


# ==================== STATUS CHANGES ====================


async def test_illegal_status_change_leaves_booking_untouched(db, user):
    booking = await create(db, user)

    with pytest.raises(InvalidStatusTransition):
        await booking_service.change_status(db, booking, "confirmed", user)
    assert booking.status == BookingStatus.PENDING_PAYMENT.value
    assert booking.confirmed_at is None


async def test_unknown_status_is_rejected(db, user):
    booking = await create(db, user)

    with pytest.raises(ValidationError):
        await booking_service.change_status(db, booking, "on_hold", user)


async def test_same_status_is_a_no_op(db, user):
    booking = await create(db, user)

    await booking_service.change_status(db, booking, "pending_payment", user)

    assert await audit_actions(db, booking) == ["booking_create"]


async def test_trek_completes_only_after_batch_ends(db, user):
    booking = await create(db, user)
    await booking_service.change_status(db, booking, BookingStatus.PAYMENT_COMPLETED, user)
    await booking_service.change_status(db, booking, BookingStatus.CONFIRMED, user)

    with pytest.raises(ValidationError):
        await booking_service.change_status(
            db, booking, BookingStatus.TREK_COMPLETED, user, today=booking.batch_start_date
        )

    await booking_service.change_status(
        db, booking, BookingStatus.TREK_COMPLETED, user, today=booking.batch_end_date
    )
    assert booking.status == BookingStatus.TREK_COMPLETED.value
    assert booking.completed_at is not None


async def test_full_payment_booking_cannot_be_marked_partial(db, user):
    booking = await create(db, user)

    with pytest.raises(ValidationError):
        await booking_service.change_status(
            db, booking, BookingStatus.PAYMENT_CONFIRMED_PARTIAL, user
        )


async def test_status_change_to_cancelled(db, user):
    booking = await create(db, user)

    await booking_service.change_status(db, booking, "cancelled", user)

    assert booking.status == BookingStatus.CANCELLED.value
    assert booking.cancelled_by == "admin"
    assert booking.cancelled_at is not None


async def test_cancelled_booking_stays_cancelled(db, user):
    booking = await create(db, user)
    await booking_service.cancel_booking(db, booking, user, reason="Change of plans", cancelled_by="user")

    with pytest.raises(InvalidStatusTransition):
        await booking_service.cancel_booking(db, booking, user, reason="Again", cancelled_by="user")


# ==================== PARTICIPANTS ====================


async def test_replace_participants(db, user):
    booking = await create(db, user)

    await booking_service.replace_participants(
        db, booking, [ParticipantBase(name="Asha", age=29), ParticipantBase(name="Kiran", age=31)], user
    )

    assert [p.name for p in booking.participants] == ["Asha", "Kiran"]
    assert [p.position for p in booking.participants] == [0, 1]


async def test_participants_limited_to_seats(db, user):
    booking = await create(db, user, participants=1)

    with pytest.raises(ValidationError):
        await booking_service.replace_participants(
            db, booking, [ParticipantBase(name="Asha"), ParticipantBase(name="Kiran")], user
        )


async def test_participants_locked_after_cancellation(db, user):
    booking = await create(db, user)
    await booking_service.cancel_booking(db, booking, user, reason="Injury", cancelled_by="user")

    with pytest.raises(InvalidBookingStatus):
        await booking_service.replace_participants(db, booking, [ParticipantBase(name="Asha")], user)


# ==================== ADMIN EDITS ====================


async def test_price_change_recomputes_remaining_balance(db, user):
    booking = await create(db, user, partial=True)
    await booking_service.record_payment(db, booking, 300_000, user)

    await booking_service.update_admin_fields(
        db, booking, AdminBookingUpdate(total_price=900_000, admin_remarks="Group discount"), user
    )

    assert booking.total_price == 900_000
    assert booking.partial_remaining_amount == 600_000
    assert booking.admin_remarks == "Group discount"


async def test_price_cannot_drop_below_amount_paid(db, user):
    booking = await create(db, user, partial=True)
    await booking_service.record_payment(db, booking, 300_000, user)

    with pytest.raises(ValidationError):
        await booking_service.update_admin_fields(db, booking, AdminBookingUpdate(total_price=200_000), user)


async def test_admin_update_cancels_with_reason(db, user):
    booking = await create(db, user)

    await booking_service.update_admin_fields(
        db,
        booking,
        AdminBookingUpdate(status=BookingStatus.CANCELLED, cancellation_reason="Batch withdrawn"),
        user,
    )

    assert booking.status == BookingStatus.CANCELLED.value
    assert booking.cancellation_reason == "Batch withdrawn"


# ==================== QUERIES ====================


async def test_list_bookings_filters(db, user):
    first = await create(db, user)
    await create(db, user, days_ahead=60)
    await booking_service.record_payment(db, first, 1_000_000, user)

    completed, total = await booking_service.list_bookings(db, status=BookingStatus.PAYMENT_COMPLETED)
    assert total == 1
    assert completed[0].id == first.id

    found, total = await booking_service.list_bookings(db, search=first.booking_number.lower())
    assert total == 1

    _, total = await booking_service.list_bookings(db, search="kedarkantha")
    assert total == 2

    page, total = await booking_service.list_bookings(db, page=2, page_size=1)
    assert total == 2
    assert len(page) == 1


async def test_list_user_bookings(db, user):
    other = User(email="ravi@example.com")
    db.add(other)
    await db.flush()
    await create(db, user)
    await create(db, other)

    bookings = await booking_service.list_user_bookings(db, user.id)

    assert [b.user_id for b in bookings] == [user.id]


async def test_reminder_flag(db, user):
    booking = await create(db, user, partial=True)

    await booking_service.mark_reminder_sent(db, booking)

    assert booking.partial_payment_details["reminder_sent"] is True
    assert booking.partial_reminder_sent_at is not None


# ==================== AUDIT ====================


async def test_unknown_audit_action_is_rejected(db, user):
    booking = await create(db, user)

    with pytest.raises(ValueError):
        await audit_service.log_booking_action(
            db, user_id=user.id, action="booking_teleport", booking_id=booking.id
        )


async def test_every_lifecycle_action_is_known(db, user):
    booking = await create(db, user, partial=True)
    await booking_service.record_payment(db, booking, 300_000, user)
    await booking_service.mark_partial_complete(db, booking, user)
    await booking_service.cancel_booking(db, booking, user, reason="Injury", cancelled_by="user")

    actions = set(await audit_actions(db, booking))

    assert actions <= audit_service.BOOKING_ACTIONS
    assert {"booking_create", "payment_record", "partial_payment_settle", "booking_cancel"} <= actions
