"""Celery worker configuration.

Background jobs for bookings:
- Partial payment reminders
- Auto-cancellation of overdue partial payments
- Expiry of unpaid checkouts
"""

from celery import Celery
from celery.schedules import crontab

from trekbook.config import settings

celery_app = Celery(
    "trekbook_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["trekbook.tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Asia/Kolkata",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,

    # Worker settings
    worker_prefetch_multiplier=1,

    # Result backend settings
    result_expires=3600,

    # Retry settings
    task_default_retry_delay=60,

    beat_schedule={
        "send-partial-payment-reminders": {
            "task": "trekbook.tasks.send_partial_payment_reminders",
            "schedule": crontab(hour=settings.reminder_time_hour, minute=0),
        },
        # Runs after midnight so a due date counts as a full day
        "auto-cancel-overdue-partial-payments": {
            "task": "trekbook.tasks.auto_cancel_overdue_partial_payments",
            "schedule": crontab(hour=0, minute=30),
        },
        "expire-pending-bookings": {
            "task": "trekbook.tasks.expire_pending_bookings",
            "schedule": crontab(minute="*/15"),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
