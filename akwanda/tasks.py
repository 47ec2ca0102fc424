"""Celery background tasks for host dues and booking housekeeping."""

import asyncio
import logging
from datetime import date

from celery import shared_task

from akwanda.config import settings
from akwanda.database import get_db_context
from akwanda.services.booking_service import booking_service
from akwanda.services.dues_service import dues_service
from akwanda.utils.dates import local_today, previous_month

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


# ==================== DUES TASKS ====================


@shared_task(bind=True, max_retries=3)
def aggregate_monthly_commission(self, period: str | None = None):
    """Build the commission ledger rows for a month.

    Defaults to the month before today (local time). Safe to re-run.
    """
    try:
        count = run_async(_aggregate_monthly_commission(period))
        return {"status": "success", "entries": count}
    except Exception as exc:
        logger.exception("Monthly commission aggregation failed")
        raise self.retry(exc=exc, countdown=300)


async def _aggregate_monthly_commission(period: str | None) -> int:
    if period:
        target = date.fromisoformat(period)
    else:
        target = previous_month(local_today(settings.timezone))
    async with get_db_context() as db:
        entries = await dues_service.run_monthly_aggregation(db, target)
    return len(entries)


@shared_task(bind=True, max_retries=3)
def send_dues_reminders(self):
    """Remind hosts with dues past their due date, once per day."""
    try:
        sent = run_async(_send_dues_reminders())
        return {"status": "success", "reminders": sent}
    except Exception as exc:
        logger.exception("Dues reminder sweep failed")
        raise self.retry(exc=exc, countdown=60)


async def _send_dues_reminders() -> int:
    async with get_db_context() as db:
        return await dues_service.run_reminder_sweep(db)


@shared_task(bind=True, max_retries=3)
def enforce_overdue_dues(self):
    """Apply late penalties and block hosts with overdue obligations."""
    try:
        affected = run_async(_enforce_overdue_dues())
        return {"status": "success", "hosts": affected}
    except Exception as exc:
        logger.exception("Overdue sweep failed")
        raise self.retry(exc=exc, countdown=60)


async def _enforce_overdue_dues() -> int:
    async with get_db_context() as db:
        return await dues_service.run_overdue_sweep(db)


# ==================== BOOKING TASKS ====================


@shared_task(bind=True, max_retries=3)
def end_finished_bookings(self):
    """Move confirmed bookings past check-out to ended."""
    try:
        ended = run_async(_end_finished_bookings())
        return {"status": "success", "ended": ended}
    except Exception as exc:
        logger.exception("Ending finished bookings failed")
        raise self.retry(exc=exc, countdown=300)


async def _end_finished_bookings() -> int:
    async with get_db_context() as db:
        return await booking_service.end_finished_bookings(db)
