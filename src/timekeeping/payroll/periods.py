from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterator

from ..core.constants import PAY_PERIOD_DAYS
from ..core.enums import PayFrequency
from ..core.exceptions import ValidationError


def _month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def iter_period_ranges(start_date: date, end_date: date, frequency: PayFrequency) -> Iterator[tuple[date, date]]:
    """Consecutive, non-overlapping (start, end) date pairs, both inclusive.

    Ranges begin at ``start_date`` and keep their full length; the last one
    may run past ``end_date``. Monthly ranges follow calendar months, the
    first one starting at ``start_date``.
    """
    if end_date < start_date:
        raise ValidationError("End date must be on or after start date")

    frequency = PayFrequency(frequency)
    current = start_date
    while current <= end_date:
        if frequency == PayFrequency.MONTHLY:
            period_end = _month_end(current)
        else:
            period_end = current + timedelta(days=PAY_PERIOD_DAYS[frequency.value] - 1)
        yield current, period_end
        current = period_end + timedelta(days=1)
