from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from conftest import make_entry
from timekeeping.core.enums import TimeEntryStatus
from timekeeping.core.exceptions import ExportedEntryImmutableError
from timekeeping.overtime.factory import OvertimeRuleFactory
from timekeeping.overtime.rules.california import CaliforniaOvertimeRule
from timekeeping.overtime.rules.federal import FederalOvertimeRule
from timekeeping.overtime.service import OvertimeCalculationService
from timekeeping.policy.model import Policy

MONDAY = datetime(2024, 3, 4, 9, 0)
FEDERAL = Policy()
CALIFORNIA = Policy(state_overtime_rules="california")


@pytest.fixture
def service() -> OvertimeCalculationService:
    return OvertimeCalculationService()


def _week(hours_per_day: list[float], **kwargs):
    return [
        make_entry(MONDAY + timedelta(days=i), MONDAY + timedelta(days=i, hours=h), **kwargs)
        for i, h in enumerate(hours_per_day)
    ]


# Single entry pass


def test_nine_to_five_without_break_is_480(service):
    entry = make_entry(MONDAY, MONDAY.replace(hour=17), status=TimeEntryStatus.IN_PROGRESS, total_minutes=0)
    breakdown = service.calculate_overtime_minutes(entry, FEDERAL)
    assert breakdown.total_minutes == 480
    assert breakdown.break_minutes == 0
    assert breakdown.regular_minutes == 480


def test_auto_deduct_applies_only_past_threshold(service):
    policy = Policy(auto_deduct_breaks=True, break_threshold_minutes=360, required_break_minutes=30)

    long_shift = make_entry(MONDAY, MONDAY + timedelta(hours=8), total_minutes=0)
    short_shift = make_entry(MONDAY, MONDAY + timedelta(hours=4), total_minutes=0)

    assert service.calculate_overtime_minutes(long_shift, policy).total_minutes == 450
    assert service.calculate_overtime_minutes(long_shift, policy).break_minutes == 30
    assert service.calculate_overtime_minutes(short_shift, policy).total_minutes == 240
    assert service.calculate_break_minutes(240, policy) == 0


def test_manual_break_is_used_without_auto_deduct(service):
    entry = make_entry(MONDAY, MONDAY + timedelta(hours=8), total_minutes=0, break_minutes=45)
    breakdown = service.calculate_overtime_minutes(entry, FEDERAL)
    assert breakdown.break_minutes == 45
    assert breakdown.total_minutes == 435


def test_break_longer_than_shift_floors_at_zero(service):
    entry = make_entry(MONDAY, MONDAY + timedelta(minutes=20), total_minutes=0, break_minutes=30)
    assert service.calculate_overtime_minutes(entry, FEDERAL).total_minutes == 0


def test_open_entry_has_no_minutes(service):
    entry = make_entry(MONDAY, None, status=TimeEntryStatus.IN_PROGRESS)
    assert service.calculate_overtime_minutes(entry, FEDERAL).total_minutes == 0


def test_exempt_employee_long_day_is_all_regular(service):
    entry = make_entry(MONDAY, MONDAY.replace(hour=22), total_minutes=0)
    breakdown = service.calculate_overtime_minutes(entry, CALIFORNIA, overtime_exempt=True)
    assert breakdown.regular_minutes == 780
    assert breakdown.overtime_minutes == 0

    entry.apply_minutes(total=breakdown.total_minutes, breaks=0, regular=breakdown.regular_minutes)
    week = service.calculate_weekly_overtime([entry], CALIFORNIA, overtime_exempt=True)
    assert (week.regular_minutes, week.overtime_minutes, week.double_time_minutes) == (780, 0, 0)


# Federal


def test_federal_three_eight_hour_days_have_no_overtime(service):
    week = service.calculate_weekly_overtime(_week([8, 8, 8]), FEDERAL)
    assert week.regular_minutes == 1440
    assert week.overtime_minutes == 0


def test_federal_overtime_past_forty_hours(service):
    week = service.calculate_weekly_overtime(_week([8, 8, 8, 8, 8, 4]), FEDERAL)
    assert week.total_minutes == 2640
    assert week.regular_minutes == 2400
    assert week.overtime_minutes == 240
    assert week.double_time_minutes == 0


def test_federal_ignores_daily_length(service):
    week = service.calculate_weekly_overtime(_week([13]), FEDERAL)
    assert (week.regular_minutes, week.overtime_minutes, week.double_time_minutes) == (780, 0, 0)


def test_federal_weekly_double_time_threshold():
    policy = Policy(double_time_threshold_minutes=3000)
    totals = FederalOvertimeRule().weekly_totals(3300, policy)
    assert (totals.regular, totals.overtime, totals.double_time) == (2400, 600, 300)


def test_federal_double_time_threshold_below_regular_is_clamped():
    policy = Policy(double_time_threshold_minutes=2000)
    totals = FederalOvertimeRule().weekly_totals(2700, policy)
    assert totals.regular == 2400
    assert totals.total == 2700


# California


def test_california_ten_hour_day():
    day = CaliforniaOvertimeRule.classify_day(600)
    assert (day.regular, day.overtime, day.double_time) == (480, 120, 0)


def test_california_thirteen_hour_day():
    day = CaliforniaOvertimeRule.classify_day(780)
    assert (day.regular, day.overtime, day.double_time) == (480, 240, 60)


def test_california_weekly_cap_moves_regular_to_overtime(service):
    week = service.calculate_weekly_overtime(_week([8, 8, 8, 8, 8, 8]), CALIFORNIA)
    assert week.regular_minutes == 2400
    assert week.overtime_minutes == 480
    assert week.double_time_minutes == 0


def test_california_daily_overtime_under_weekly_cap(service):
    week = service.calculate_weekly_overtime(_week([9, 9, 9, 9]), CALIFORNIA)
    assert week.regular_minutes == 1920
    assert week.overtime_minutes == 240


def test_factory_picks_rule_by_jurisdiction():
    factory = OvertimeRuleFactory()
    assert isinstance(factory.for_policy(CALIFORNIA), CaliforniaOvertimeRule)
    assert isinstance(factory.for_policy(FEDERAL), FederalOvertimeRule)
    assert isinstance(factory.for_policy(Policy(state_overtime_rules="nowhere")), FederalOvertimeRule)


# Writing back onto entries


@pytest.mark.parametrize("policy", [FEDERAL, CALIFORNIA])
def test_recalculate_week_keeps_every_entry_consistent(service, policy):
    entries = _week([8, 8, 8, 8, 8, 4])
    week = service.recalculate_week_entries(entries, policy)

    assert sum(e.regular_minutes for e in entries) == week.regular_minutes
    assert sum(e.overtime_minutes for e in entries) == week.overtime_minutes
    for e in entries:
        assert e.regular_minutes > 0
        assert e.regular_minutes + e.overtime_minutes + e.double_time_minutes == e.total_minutes


def test_recalculate_week_order_does_not_matter(service):
    entries = _week([8, 8, 8, 8, 8, 4])
    shuffled = list(reversed([e.copy() for e in entries]))

    service.recalculate_week_entries(entries, FEDERAL)
    service.recalculate_week_entries(shuffled, FEDERAL)

    by_start = {e.clock_in: e.overtime_minutes for e in shuffled}
    assert [by_start[e.clock_in] for e in entries] == [e.overtime_minutes for e in entries]


def test_recalculate_week_skips_exported_entries(service):
    entries = _week([8, 8, 8, 8, 8, 4])
    paid = entries[0]
    paid.status = TimeEntryStatus.PAID
    paid.exported_to_payroll = True

    week = service.recalculate_week_entries(entries, FEDERAL)

    assert week.overtime_minutes == 240
    assert (paid.regular_minutes, paid.overtime_minutes) == (480, 0)
    assert all(e.overtime_minutes > 0 for e in entries[1:])
    assert sum(e.overtime_minutes for e in entries) == 240
    assert sum(e.regular_minutes for e in entries) == 2400
    for e in entries:
        assert e.regular_minutes + e.overtime_minutes + e.double_time_minutes == e.total_minutes


def test_exported_entry_share_of_double_time_moves_to_the_rest(service):
    policy = Policy(double_time_threshold_minutes=50 * 60)
    entries = _week([10, 10, 10, 10, 10, 10])
    entries[0].status = TimeEntryStatus.PAID
    entries[0].exported_to_payroll = True

    week = service.recalculate_week_entries(entries, policy)

    assert (week.regular_minutes, week.overtime_minutes, week.double_time_minutes) == (2400, 600, 600)
    assert (entries[0].regular_minutes, entries[0].overtime_minutes) == (600, 0)
    for e in entries[1:]:
        assert (e.regular_minutes, e.overtime_minutes, e.double_time_minutes) == (360, 120, 120)


def test_settle_week_leaves_carried_entries_alone(service):
    entries = _week([10, 10, 8, 8, 8, 8, 8])
    carried, current = entries[:2], entries[2:]

    settled = service.settle_week(current, FEDERAL, carried=carried)

    assert [e for e, _ in settled] == current
    assert sum(b.overtime for _, b in settled) == 1200
    assert all(b.total == 480 for _, b in settled)
    assert all(c.overtime_minutes == 0 for c in carried)


def test_exported_entry_minutes_are_immutable():
    entry = make_entry(MONDAY, MONDAY + timedelta(hours=8), status=TimeEntryStatus.PAID, exported_to_payroll=True)
    with pytest.raises(ExportedEntryImmutableError):
        entry.apply_classification(regular=0, overtime=480, double_time=0)
    with pytest.raises(ExportedEntryImmutableError):
        entry.apply_minutes(total=0, breaks=0, regular=0)
    assert entry.regular_minutes == 480
