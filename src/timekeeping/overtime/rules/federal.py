from __future__ import annotations

from typing import Sequence

from ...policy.model import Policy
from ..allocation import allocate_proportionally
from ..model import MinuteBuckets
from .base import OvertimeRule


class FederalOvertimeRule(OvertimeRule):
    """FLSA: overtime only past the weekly threshold (40h by default).

    An optional weekly double-time threshold splits the excess further. The
    weekly overtime and double-time are spread over the week's entries in
    proportion to their minutes.
    """

    def weekly_totals(self, total: int, policy: Policy) -> MinuteBuckets:
        regular = min(total, policy.weekly_overtime_threshold_minutes)
        remainder = total - regular

        double_time_threshold = policy.double_time_threshold_minutes
        if double_time_threshold is None:
            return MinuteBuckets(regular=regular, overtime=remainder, double_time=0)

        overtime = min(remainder, max(0, double_time_threshold - regular))
        double_time = max(0, min(total - double_time_threshold, remainder - overtime))
        return MinuteBuckets(regular=regular, overtime=overtime, double_time=double_time)

    def classify_week(self, minutes: Sequence[int], policy: Policy) -> list[MinuteBuckets]:
        minutes = [max(int(m), 0) for m in minutes]
        weekly = self.weekly_totals(sum(minutes), policy)

        premium = allocate_proportionally(weekly.overtime + weekly.double_time, minutes)
        double_time = allocate_proportionally(weekly.double_time, premium)

        return [
            MinuteBuckets(regular=m - p, overtime=p - d, double_time=d)
            for m, p, d in zip(minutes, premium, double_time)
        ]
