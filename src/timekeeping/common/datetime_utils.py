from __future__ import annotations

from datetime import date, datetime, time, timedelta

from ..core.constants import HOURS_PRECISION, MINUTES_PER_HOUR


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def round_time(value: datetime, granularity: int) -> datetime:
    """Snap a timestamp to the nearest multiple of ``granularity`` minutes.

    Rounding works on minutes past the hour; a remainder of at least half the
    granularity rounds up (09:08 -> 09:15 at 15 minutes) and the carry flows
    into the hour. Seconds are dropped. A granularity of 0 returns ``value``
    untouched.
    """
    if not granularity or granularity <= 0:
        return value

    base = value.replace(second=0, microsecond=0)
    remainder = base.minute % granularity
    if remainder * 2 >= granularity:
        return base + timedelta(minutes=granularity - remainder)
    return base - timedelta(minutes=remainder)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, never negative."""
    seconds = (end - start).total_seconds()
    return max(int(seconds // 60), 0)


def hours_from_minutes(minutes: int) -> float:
    return round(minutes / MINUTES_PER_HOUR, HOURS_PRECISION)


def week_start(day: date) -> date:
    """Monday of the work week containing ``day``."""
    return day - timedelta(days=day.weekday())


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Half-open datetime window covering the inclusive date range."""
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)
