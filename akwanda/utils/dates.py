"""Date and time helpers."""

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from the store."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def month_bounds(any_day: date) -> tuple[date, date]:
    """First and last day of the calendar month containing ``any_day``."""
    period_start = any_day.replace(day=1)
    next_month = period_start.replace(day=28) + timedelta(days=4)
    period_end = next_month - timedelta(days=next_month.day)
    return period_start, period_end


def previous_month(any_day: date) -> date:
    """A day inside the month before ``any_day``."""
    return any_day.replace(day=1) - timedelta(days=1)


def local_today(tz_name: str) -> date:
    """Calendar date in the marketplace's time zone."""
    return datetime.now(ZoneInfo(tz_name)).date()


def local_date(moment: datetime, tz_name: str) -> date:
    """Calendar date of ``moment`` in the marketplace's time zone."""
    return as_utc(moment).astimezone(ZoneInfo(tz_name)).date()
