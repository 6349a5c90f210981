"""Celery background tasks for the booking lifecycle."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime, timedelta
from typing import TypeVar

from celery import shared_task
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from trekbook.config import settings
from trekbook.domain.booking_state import BookingStatus, PaymentMode
from trekbook.models.booking import Booking
from trekbook.services.audit_service import audit_service
from trekbook.services.booking_service import booking_service
from trekbook.services.notification_service import notification_service

logger = logging.getLogger(__name__)

AUTO_CANCEL_REASON = "Auto-cancelled due to non-payment of remaining balance"
PENDING_EXPIRED_REASON = "Booking session expired without payment completion"

T = TypeVar("T")


@asynccontextmanager
async def task_session() -> AsyncGenerator[AsyncSession, None]:
    """Session on a throwaway engine, since each task run gets its own event loop."""
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        async with session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise
    finally:
        await notification_service.close()
        await engine.dispose()


def run_with_session(job: Callable[[AsyncSession], Awaitable[T]]) -> T:
    """Run an async job with a fresh session from sync Celery code."""

    async def runner() -> T:
        async with task_session() as db:
            return await job(db)

    return asyncio.run(runner())


# ==================== PARTIAL PAYMENT TASKS ====================


@shared_task(bind=True, max_retries=3)
def send_partial_payment_reminders(self):
    """Remind travellers whose remaining balance falls due within the reminder window."""
    try:
        sent = run_with_session(_send_partial_payment_reminders)
    except Exception as exc:
        raise self.retry(exc=exc, countdown=300)
    return {"status": "success", "reminders_sent": sent}


async def _send_partial_payment_reminders(db: AsyncSession, today: date | None = None) -> int:
    """Send reminders and return how many were delivered.

    A booking is marked as reminded only when the email went out, so a
    failed send is retried on the next run. Each booking is committed on
    its own.
    """
    today = today or datetime.now(UTC).date()
    window_end = today + timedelta(days=settings.partial_payment_reminder_days)

    result = await db.execute(
        select(Booking.id).where(
            Booking.payment_mode == PaymentMode.PARTIAL.value,
            Booking.status == BookingStatus.PAYMENT_CONFIRMED_PARTIAL.value,
            Booking.partial_final_payment_due_date >= today,
            Booking.partial_final_payment_due_date <= window_end,
            Booking.partial_reminder_sent == False,  # noqa: E712
        )
    )
    booking_ids = result.scalars().all()
    logger.info(f"Found {len(booking_ids)} bookings with partial payments due by {window_end}")

    sent = 0
    for booking_id in booking_ids:
        booking = await booking_service.get_booking(db, booking_id)
        booking_number = booking.booking_number
        try:
            if not await notification_service.send_partial_payment_reminder(booking):
                logger.error(f"Failed to send reminder for booking {booking_number}")
                continue

            await booking_service.mark_reminder_sent(db, booking)
            await audit_service.log_booking_action(
                db,
                user_id=None,
                action="partial_payment_reminder",
                booking_id=booking.id,
                new_values={"reminder_sent": True},
            )
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception(f"Reminder job failed for booking {booking_number}")
            continue

        sent += 1
        logger.info(f"Reminder sent for booking {booking_number}")

    return sent


@shared_task(bind=True, max_retries=3)
def auto_cancel_overdue_partial_payments(self):
    """Cancel partial bookings whose balance was not paid by the due date."""
    try:
        cancelled = run_with_session(_auto_cancel_overdue_partial_payments)
    except Exception as exc:
        raise self.retry(exc=exc, countdown=300)
    return {"status": "success", "bookings_cancelled": cancelled}


async def _auto_cancel_overdue_partial_payments(db: AsyncSession, today: date | None = None) -> int:
    """Cancel overdue bookings that opted into auto-cancellation; return the count."""
    today = today or datetime.now(UTC).date()

    result = await db.execute(
        select(Booking.id).where(
            Booking.payment_mode == PaymentMode.PARTIAL.value,
            Booking.status == BookingStatus.PAYMENT_CONFIRMED_PARTIAL.value,
            Booking.partial_final_payment_due_date < today,
            Booking.auto_cancel_on_due_date == True,  # noqa: E712
        )
    )
    booking_ids = result.scalars().all()
    logger.info(f"Found {len(booking_ids)} bookings with overdue partial payments")

    cancelled = 0
    for booking_id in booking_ids:
        booking = await booking_service.get_booking(db, booking_id)
        booking_number = booking.booking_number
        try:
            await booking_service.cancel_booking(
                db, booking, None, reason=AUTO_CANCEL_REASON, cancelled_by="system"
            )
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception(f"Auto-cancel failed for booking {booking_number}")
            continue

        cancelled += 1
        if not await notification_service.send_auto_cancellation(booking):
            logger.warning(f"Cancellation email not delivered for booking {booking_number}")

    return cancelled


# ==================== PENDING PAYMENT TASKS ====================


@shared_task(bind=True, max_retries=3)
def expire_pending_bookings(self):
    """Cancel checkouts that were never paid."""
    try:
        expired = run_with_session(_expire_pending_bookings)
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60)
    return {"status": "success", "bookings_expired": expired}


async def _expire_pending_bookings(db: AsyncSession, now: datetime | None = None) -> int:
    """Cancel bookings left in pending_payment past the expiry window; return the count."""
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(minutes=settings.pending_payment_expiry_minutes)

    result = await db.execute(
        select(Booking.id).where(
            Booking.status == BookingStatus.PENDING_PAYMENT.value,
            Booking.created_at < cutoff,
        )
    )
    booking_ids = result.scalars().all()
    logger.info(f"Found {len(booking_ids)} pending bookings created before {cutoff:%Y-%m-%d %H:%M}")

    expired = 0
    for booking_id in booking_ids:
        booking = await booking_service.get_booking(db, booking_id)
        booking_number = booking.booking_number
        try:
            await booking_service.cancel_booking(
                db, booking, None, reason=PENDING_EXPIRED_REASON, cancelled_by="system"
            )
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception(f"Could not expire pending booking {booking_number}")
            continue
        expired += 1

    return expired
