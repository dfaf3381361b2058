"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


def add_months(from_date: date, months: int) -> date:
    """Shift a date by whole calendar months, clamping to the last valid day (Jan 31 + 1 -> Feb 28/29)"""
    year = from_date.year + (from_date.month - 1 + months) // 12
    month = (from_date.month - 1 + months) % 12 + 1
    day = min(from_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_days(from_date: date, days: int) -> date:
    return from_date + timedelta(days=days)


def utcnow() -> datetime:
    """Timezone-aware current instant"""
    return datetime.now(timezone.utc)


def local_date(instant: datetime, tz_name: str) -> date:
    """
    Calendar date of an instant in the business timezone.

    Naive datetimes are taken as UTC. Year/month/day come straight from the
    converted instant so no midnight rollover can shift the date.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(ZoneInfo(tz_name)).date()
