"""Whole-day arithmetic on UTC timestamps."""

from datetime import UTC, date, datetime, time, timedelta

SECONDS_PER_DAY = 86400


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def whole_days_between(later: datetime, earlier: datetime) -> int:
    """Number of complete days elapsed from earlier to later (floored)."""
    delta = as_utc(later) - as_utc(earlier)
    return int(delta.total_seconds() // SECONDS_PER_DAY)


def utc_date(value: datetime) -> date:
    return as_utc(value).date()


def start_of_day(value: datetime) -> datetime:
    """Midnight UTC of the day containing value."""
    return datetime.combine(utc_date(value), time(), tzinfo=UTC)


def next_monday(now: datetime) -> datetime:
    """Midnight of the first Monday strictly after today.

    Sunday yields tomorrow; Monday yields a week out.
    """
    today = start_of_day(now)
    return today + timedelta(days=7 - today.weekday())
