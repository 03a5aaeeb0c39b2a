from __future__ import annotations

from typing import Sequence

from ...core.constants import CA_DAILY_DOUBLE_TIME_MINUTES, CA_DAILY_REGULAR_MINUTES
from ...policy.model import Policy
from ..allocation import allocate_proportionally
from ..model import MinuteBuckets
from .base import OvertimeRule


class CaliforniaOvertimeRule(OvertimeRule):
    """Daily rule: overtime after 8h, double-time after 12h in a day.

    Each entry counts as one day. On top of that the weekly threshold caps the
    regular bucket; regular minutes past it become overtime, taken from the
    days in proportion to their regular minutes. Double-time is never touched
    by the weekly cap.
    """

    @staticmethod
    def classify_day(minutes: int) -> MinuteBuckets:
        regular = min(minutes, CA_DAILY_REGULAR_MINUTES)
        overtime = min(max(minutes - CA_DAILY_REGULAR_MINUTES, 0), CA_DAILY_DOUBLE_TIME_MINUTES - CA_DAILY_REGULAR_MINUTES)
        double_time = max(minutes - CA_DAILY_DOUBLE_TIME_MINUTES, 0)
        return MinuteBuckets(regular=regular, overtime=overtime, double_time=double_time)

    def classify_week(self, minutes: Sequence[int], policy: Policy) -> list[MinuteBuckets]:
        days = [self.classify_day(max(int(m), 0)) for m in minutes]

        excess = sum(d.regular for d in days) - policy.weekly_overtime_threshold_minutes
        if excess <= 0:
            return days

        moved = allocate_proportionally(excess, [d.regular for d in days])
        return [
            MinuteBuckets(regular=d.regular - m, overtime=d.overtime + m, double_time=d.double_time)
            for d, m in zip(days, moved)
        ]
