from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import minutes_between, round_time
from ..policy.model import Policy
from ..time_entries.model import TimeEntry
from .allocation import allocate_proportionally
from .factory import OvertimeRuleFactory
from .model import MinuteBreakdown, MinuteBuckets, WeeklyOvertime

logger = logging.getLogger(__name__)


class OvertimeCalculationService:
    """Classifies worked minutes into regular, overtime and double-time buckets.

    Two passes:
      * ``calculate_overtime_minutes`` runs at clock-out on a single entry and
        only settles total and break minutes; overtime is a weekly concept.
      * ``calculate_weekly_overtime`` / ``recalculate_week_entries`` classify a
        full work week under the policy's jurisdiction.
    """

    def __init__(self, *, rule_factory: Optional[OvertimeRuleFactory] = None):
        self._factory = rule_factory or OvertimeRuleFactory()

    @staticmethod
    def round_time(value: datetime, granularity: int) -> datetime:
        return round_time(value, granularity)

    def calculate_break_minutes(self, total_minutes: int, policy: Policy) -> int:
        if not policy.auto_deduct_breaks:
            return 0
        if total_minutes < policy.break_threshold_minutes:
            return 0
        return policy.required_break_minutes

    def calculate_overtime_minutes(
        self,
        entry: TimeEntry,
        policy: Policy,
        *,
        overtime_exempt: bool = False,
    ) -> MinuteBreakdown:
        if not entry.clock_in or not entry.clock_out:
            return MinuteBreakdown()

        total = minutes_between(entry.clock_in, entry.clock_out)
        if policy.auto_deduct_breaks:
            breaks = self.calculate_break_minutes(total, policy)
        else:
            breaks = max(int(entry.break_minutes or 0), 0)
        total = max(total - breaks, 0)

        # Overtime is split by the weekly pass.
        return MinuteBreakdown(
            total_minutes=total,
            regular_minutes=total,
            overtime_minutes=0,
            break_minutes=breaks,
        )

    def classify_week(
        self,
        entries: Sequence[TimeEntry],
        policy: Policy,
        *,
        overtime_exempt: bool = False,
    ) -> list[MinuteBuckets]:
        """Per-entry buckets for one employee's week, in the order given."""
        minutes = [max(int(e.total_minutes or 0), 0) for e in entries]
        if overtime_exempt:
            return [MinuteBuckets(regular=m) for m in minutes]
        return self._factory.for_policy(policy).classify_week(minutes, policy)

    def calculate_weekly_overtime(
        self,
        entries: Iterable[TimeEntry],
        policy: Policy,
        *,
        overtime_exempt: bool = False,
    ) -> WeeklyOvertime:
        ordered = sorted(entries, key=lambda e: e.clock_in)
        return WeeklyOvertime.from_buckets(self.classify_week(ordered, policy, overtime_exempt=overtime_exempt))

    def settle_week(
        self,
        entries: Iterable[TimeEntry],
        policy: Policy,
        *,
        carried: Iterable[TimeEntry] = (),
        overtime_exempt: bool = False,
    ) -> list[tuple[TimeEntry, MinuteBuckets]]:
        """Buckets for ``entries`` when ``carried`` entries of the same week keep theirs.

        The whole week is classified together; whatever premium the carried
        entries don't already hold is spread over ``entries``.
        """
        rows = sorted([(e, False) for e in entries] + [(e, True) for e in carried], key=lambda r: r[0].clock_in)
        buckets = self.classify_week([e for e, _ in rows], policy, overtime_exempt=overtime_exempt)
        week = WeeklyOvertime.from_buckets(buckets)

        fixed = [e for e, is_carried in rows if is_carried]
        open_rows = [(e, b) for (e, is_carried), b in zip(rows, buckets) if not is_carried]
        settled = _rebalance(
            [b for _, b in open_rows],
            overtime=week.overtime_minutes - sum(e.overtime_minutes for e in fixed),
            double_time=week.double_time_minutes - sum(e.double_time_minutes for e in fixed),
        )
        return [(e, b) for (e, _), b in zip(open_rows, settled)]

    def recalculate_week_entries(
        self,
        entries: Iterable[TimeEntry],
        policy: Policy,
        *,
        overtime_exempt: bool = False,
    ) -> WeeklyOvertime:
        """Write the week's classification back onto each entry.

        Exported entries count toward the week's hours but keep their stored
        buckets; the rest absorb whatever premium those don't already carry.
        Returns the stored totals, which match the week's classification.
        """
        entries = list(entries)
        locked = [e for e in entries if e.is_locked]
        for entry in locked:
            logger.debug("skip exported entry", extra={"entry_id": entry.entry_id})

        settled = self.settle_week(
            [e for e in entries if not e.is_locked],
            policy,
            carried=locked,
            overtime_exempt=overtime_exempt,
        )
        for entry, b in settled:
            entry.apply_classification(regular=b.regular, overtime=b.overtime, double_time=b.double_time)

        return WeeklyOvertime.from_buckets(_stored_buckets(e) for e in entries)


def _stored_buckets(entry: TimeEntry) -> MinuteBuckets:
    return MinuteBuckets(
        regular=entry.regular_minutes,
        overtime=entry.overtime_minutes,
        double_time=entry.double_time_minutes,
    )


def _rebalance(buckets: list[MinuteBuckets], *, overtime: int, double_time: int) -> list[MinuteBuckets]:
    """Move minutes between buckets until the premiums add up to the targets.

    Minutes move in proportion to what each entry holds in the source bucket,
    so every entry still adds up to its own total. Targets are clamped to the
    minutes available.
    """
    available = sum(b.total for b in buckets)
    double_time = min(max(double_time, 0), available)
    overtime = min(max(overtime, 0), available - double_time)

    regular = [b.regular for b in buckets]
    ot = [b.overtime for b in buckets]
    dt = [b.double_time for b in buckets]

    def move(amount: int, source: list[int], target: list[int]) -> int:
        amount = min(amount, sum(source))
        for i, m in enumerate(allocate_proportionally(amount, source)):
            source[i] -= m
            target[i] += m
        return amount

    need = double_time - sum(dt)
    if need > 0:
        need -= move(need, regular, dt)
        move(need, ot, dt)
    elif need < 0:
        move(-need, dt, regular)

    need = overtime - sum(ot)
    if need > 0:
        move(need, regular, ot)
    elif need < 0:
        move(-need, ot, regular)

    return [MinuteBuckets(regular=r, overtime=o, double_time=d) for r, o, d in zip(regular, ot, dt)]
