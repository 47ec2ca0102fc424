"""Celery worker configuration and beat schedule.

Periodic jobs:
- Monthly commission aggregation for the previous month
- Daily dues reminders
- Hourly overdue enforcement
- Daily ending of finished stays
"""

from celery import Celery
from celery.schedules import crontab

from akwanda.config import settings

# Create Celery app
celery_app = Celery(
    "akwanda_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["akwanda.tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.timezone,
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,

    # Result backend settings
    result_expires=3600,

    # Retry settings
    task_default_retry_delay=60,
    task_max_retries=3,

    # Beat schedule for periodic tasks
    beat_schedule={
        # Aggregate last month's commission at the start of each month
        "aggregate-monthly-commission": {
            "task": "akwanda.tasks.aggregate_monthly_commission",
            "schedule": crontab(
                day_of_month=settings.aggregation_day_of_month,
                hour=settings.aggregation_hour,
                minute=0,
            ),
        },
        # Dues reminders once a day
        "send-dues-reminders": {
            "task": "akwanda.tasks.send_dues_reminders",
            "schedule": crontab(hour=settings.reminder_hour, minute=0),
        },
        # Late penalties and blocks
        "enforce-overdue-dues": {
            "task": "akwanda.tasks.enforce_overdue_dues",
            "schedule": crontab(minute=15),
        },
        # End stays whose check-out has passed
        "end-finished-bookings": {
            "task": "akwanda.tasks.end_finished_bookings",
            "schedule": crontab(hour=1, minute=30),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
