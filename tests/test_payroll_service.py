from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from conftest import InMemoryPayPeriods, make_entry
from timekeeping.core.enums import PayFrequency, PayPeriodStatus, TimeEntryStatus
from timekeeping.core.exceptions import PeriodAlreadyExistsError, ValidationError
from timekeeping.events import sink as event_names
from timekeeping.pay_periods.model import PayPeriod
from timekeeping.payroll.periods import iter_period_ranges
from timekeeping.payroll.service import PayrollTimeCalculationService
from timekeeping.policy.model import Policy

WEEK_ONE = datetime(2024, 3, 4, 9, 0)
WEEK_TWO = datetime(2024, 3, 11, 9, 0)


@pytest.fixture
def service(entries, pay_periods, employees, events, clock) -> PayrollTimeCalculationService:
    return PayrollTimeCalculationService(entries, pay_periods, employees, events_sink=events, clock=clock)


@pytest.fixture
def period(pay_periods) -> PayPeriod:
    return pay_periods.create(
        PayPeriod(company_id=10, start_date=date(2024, 3, 4), end_date=date(2024, 3, 17), frequency=PayFrequency.BIWEEKLY)
    )


def _add_week(entries, start: datetime, hours: list[float], **kwargs):
    return [
        entries.add(make_entry(start + timedelta(days=i), start + timedelta(days=i, hours=h), **kwargs))
        for i, h in enumerate(hours)
    ]


# Period ranges


def test_biweekly_ranges_keep_full_length():
    ranges = list(iter_period_ranges(date(2024, 1, 1), date(2024, 1, 31), PayFrequency.BIWEEKLY))
    assert ranges == [
        (date(2024, 1, 1), date(2024, 1, 14)),
        (date(2024, 1, 15), date(2024, 1, 28)),
        (date(2024, 1, 29), date(2024, 2, 11)),
    ]


def test_weekly_ranges():
    ranges = list(iter_period_ranges(date(2024, 3, 4), date(2024, 3, 17), PayFrequency.WEEKLY))
    assert ranges == [(date(2024, 3, 4), date(2024, 3, 10)), (date(2024, 3, 11), date(2024, 3, 17))]


def test_monthly_ranges_follow_calendar_months():
    ranges = list(iter_period_ranges(date(2024, 1, 15), date(2024, 3, 10), PayFrequency.MONTHLY))
    assert ranges == [
        (date(2024, 1, 15), date(2024, 1, 31)),
        (date(2024, 2, 1), date(2024, 2, 29)),
        (date(2024, 3, 1), date(2024, 3, 31)),
    ]


def test_inverted_range_is_rejected():
    with pytest.raises(ValidationError):
        list(iter_period_ranges(date(2024, 2, 1), date(2024, 1, 1), PayFrequency.WEEKLY))


# Generation


def test_generate_is_idempotent(service, pay_periods, events):
    first = service.generate_pay_periods(10, date(2024, 1, 1), date(2024, 3, 31), "biweekly")
    second = service.generate_pay_periods(10, date(2024, 1, 1), date(2024, 3, 31), PayFrequency.BIWEEKLY)

    assert len(first) == len(second) == 7
    assert [p.period_id for p in first] == [p.period_id for p in second]
    assert len(pay_periods.rows) == 7
    assert all(p.status == PayPeriodStatus.OPEN for p in first)

    created = [fields["periods_created"] for name, fields in events.events if name == event_names.PAY_PERIODS_GENERATED]
    assert created == [7, 0]


def test_generate_tolerates_concurrent_creator(entries, employees, clock):
    class RacingPayPeriods(InMemoryPayPeriods):
        def create(self, period):
            # Another worker inserts the same range first.
            super().create(period)
            raise PeriodAlreadyExistsError("duplicate")

    repo = RacingPayPeriods()
    service = PayrollTimeCalculationService(entries, repo, employees, clock=clock)

    periods = service.generate_pay_periods(10, date(2024, 1, 1), date(2024, 1, 28), PayFrequency.BIWEEKLY)

    assert len(periods) == 2
    assert all(p.period_id is not None for p in periods)


def test_generate_rejects_unknown_frequency(service):
    with pytest.raises(ValidationError):
        service.generate_pay_periods(10, date(2024, 1, 1), date(2024, 1, 31), "fortnightly")


# Approval and export


def test_approve_pay_period_cascades_to_completed_entries(service, entries, period, clock, events):
    completed = entries.add(make_entry(WEEK_ONE, WEEK_ONE + timedelta(hours=8)))
    approved = entries.add(
        make_entry(WEEK_ONE + timedelta(days=1), WEEK_ONE + timedelta(days=1, hours=8), status=TimeEntryStatus.APPROVED, approved_by=5)
    )
    paid = entries.add(
        make_entry(WEEK_ONE + timedelta(days=2), WEEK_ONE + timedelta(days=2, hours=8), status=TimeEntryStatus.PAID, exported_to_payroll=True)
    )
    running = entries.add(make_entry(WEEK_TWO, status=TimeEntryStatus.IN_PROGRESS))
    outside = entries.add(make_entry(datetime(2024, 3, 18, 9), datetime(2024, 3, 18, 17)))

    result = service.approve_pay_period(period, approver_id=42)

    assert result.status == PayPeriodStatus.APPROVED
    assert result.approved_by == 42
    assert result.approved_at == clock.now
    assert entries.get_by_id(completed.entry_id).status == TimeEntryStatus.APPROVED
    assert entries.get_by_id(completed.entry_id).approved_by == 42
    assert entries.get_by_id(approved.entry_id).approved_by == 5
    assert entries.get_by_id(paid.entry_id).status == TimeEntryStatus.PAID
    assert entries.get_by_id(running.entry_id).status == TimeEntryStatus.IN_PROGRESS
    assert entries.get_by_id(outside.entry_id).status == TimeEntryStatus.COMPLETED

    name, fields = events.events[-1]
    assert name == event_names.PAY_PERIOD_APPROVED
    assert fields["entries_approved"] == 1


def test_closed_period_cannot_be_approved(service, period):
    period.status = PayPeriodStatus.CLOSED
    with pytest.raises(ValidationError):
        service.approve_pay_period(period, approver_id=42)


def test_mark_as_exported_only_touches_approved_entries(service, entries, period, clock):
    approved = entries.add(make_entry(WEEK_ONE, WEEK_ONE + timedelta(hours=8), status=TimeEntryStatus.APPROVED))
    completed = entries.add(make_entry(WEEK_TWO, WEEK_TWO + timedelta(hours=8)))

    assert service.mark_as_exported(period, "BATCH-1") == 1

    exported = entries.get_by_id(approved.entry_id)
    assert exported.status == TimeEntryStatus.PAID
    assert exported.exported_to_payroll is True
    assert exported.exported_at == clock.now
    assert exported.payroll_batch_id == "BATCH-1"
    assert entries.get_by_id(completed.entry_id).status == TimeEntryStatus.COMPLETED

    assert service.mark_as_exported(period, "BATCH-2") == 0
    assert entries.get_by_id(approved.entry_id).payroll_batch_id == "BATCH-1"


def test_mark_as_exported_requires_batch_id(service, period):
    with pytest.raises(ValidationError):
        service.mark_as_exported(period, "")


# Aggregation


def test_pay_period_hours_split_overtime_per_week(service, entries, period):
    _add_week(entries, WEEK_ONE, [8, 8, 8, 8, 8, 4], status=TimeEntryStatus.APPROVED)
    _add_week(entries, WEEK_TWO, [8, 8, 8, 8, 8, 4], status=TimeEntryStatus.PAID)
    entries.add(make_entry(datetime(2024, 3, 17, 9), datetime(2024, 3, 17, 17)))

    (row,) = service.calculate_pay_period_hours(period, Policy())

    assert row.employee_id == 1
    assert row.name == "Ana Lopez"
    assert row.entry_count == 12
    assert row.total_hours == 88.0
    assert row.regular_hours == 80.0
    assert row.overtime_hours == 8.0
    assert row.double_time_hours == 0.0


def test_pay_period_hours_for_exempt_employee(service, entries, period):
    _add_week(entries, WEEK_ONE, [8, 8, 8, 8, 8, 4], employee_id=1, status=TimeEntryStatus.APPROVED)
    _add_week(entries, WEEK_ONE, [8, 8, 8, 8, 8, 4], employee_id=2, status=TimeEntryStatus.APPROVED)

    rows = {r.employee_id: r for r in service.calculate_pay_period_hours(period, Policy())}
    assert rows[1].overtime_hours == 4.0
    assert rows[2].regular_hours == 44.0
    assert rows[2].overtime_hours == 0.0

    (only,) = service.calculate_pay_period_hours(period, Policy(), employee_id=2)
    assert only.employee_id == 2


def test_pay_period_hours_california(service, entries, period):
    entries.add(make_entry(WEEK_ONE, WEEK_ONE + timedelta(hours=13), status=TimeEntryStatus.APPROVED))
    (row,) = service.calculate_pay_period_hours(period, Policy(state_overtime_rules="california"))
    assert (row.regular_hours, row.overtime_hours, row.double_time_hours) == (8.0, 4.0, 1.0)


def test_recalculate_pay_period_writes_buckets(service, entries, period):
    week = _add_week(entries, WEEK_ONE, [8, 8, 8, 8, 8, 4])
    paid = entries.add(
        make_entry(WEEK_TWO, WEEK_TWO + timedelta(hours=12), status=TimeEntryStatus.PAID, exported_to_payroll=True)
    )

    saved = service.recalculate_pay_period(period, Policy())

    assert saved == len(week)
    stored = [entries.get_by_id(e.entry_id) for e in week]
    assert sum(e.overtime_minutes for e in stored) == 240
    assert sum(e.regular_minutes for e in stored) == 2400
    assert entries.get_by_id(paid.entry_id).regular_minutes == 720


def test_summary_statistics(service, entries, period):
    entries.add(make_entry(WEEK_ONE, WEEK_ONE + timedelta(hours=8), status=TimeEntryStatus.APPROVED))
    entries.add(make_entry(WEEK_ONE + timedelta(days=1), WEEK_ONE + timedelta(days=1, hours=6)))
    entries.add(
        make_entry(
            WEEK_TWO,
            WEEK_TWO + timedelta(hours=10),
            employee_id=2,
            status=TimeEntryStatus.PAID,
            exported_to_payroll=True,
            total_minutes=600,
            regular_minutes=480,
            overtime_minutes=120,
        )
    )

    summary = service.get_summary_statistics(period).to_dict()

    assert summary == {
        "total_entries": 3,
        "approved_entries": 2,
        "pending_entries": 1,
        "exported_entries": 1,
        "not_exported_entries": 2,
        "total_hours": 24.0,
        "regular_hours": 22.0,
        "overtime_hours": 2.0,
        "unique_employees": 2,
        "double_time_hours": 0.0,
    }


def test_summary_overtime_matches_hours_after_recalculation(service, entries, period):
    week = _add_week(entries, WEEK_ONE, [8, 8, 8, 8, 8, 4], status=TimeEntryStatus.APPROVED)
    paid = week[0]
    paid.status = TimeEntryStatus.PAID
    paid.exported_to_payroll = True
    entries.rows[paid.entry_id] = paid.copy()

    service.recalculate_pay_period(period, Policy())

    (row,) = service.calculate_pay_period_hours(period, Policy())
    summary = service.get_summary_statistics(period)
    assert row.overtime_hours == summary.overtime_hours == 4.0
    assert row.regular_hours == summary.regular_hours == 40.0


# Work weeks that straddle a period edge


@pytest.fixture
def split_week(pay_periods):
    """Weekly periods running Wednesday to Tuesday around the week of WEEK_ONE."""
    previous = pay_periods.create(
        PayPeriod(company_id=10, start_date=date(2024, 2, 28), end_date=date(2024, 3, 5), frequency=PayFrequency.WEEKLY)
    )
    current = pay_periods.create(
        PayPeriod(company_id=10, start_date=date(2024, 3, 6), end_date=date(2024, 3, 12), frequency=PayFrequency.WEEKLY)
    )
    return previous, current


def test_straddling_week_counts_hours_from_both_periods(service, entries, split_week):
    previous, current = split_week
    _add_week(entries, WEEK_ONE, [10, 10], status=TimeEntryStatus.APPROVED)
    _add_week(entries, WEEK_ONE + timedelta(days=2), [8, 8, 8, 8, 8], status=TimeEntryStatus.APPROVED)

    (now,) = service.calculate_pay_period_hours(current, Policy())
    (before,) = service.calculate_pay_period_hours(previous, Policy())

    assert (now.entry_count, now.total_hours) == (5, 40.0)
    assert (now.regular_hours, now.overtime_hours) == (26.67, 13.33)
    assert (before.entry_count, before.total_hours) == (2, 20.0)
    assert (before.regular_hours, before.overtime_hours) == (13.33, 6.67)


def test_straddling_week_is_not_split_when_period_starts_monday(service, entries, period):
    _add_week(entries, WEEK_ONE - timedelta(days=7), [10, 10, 10, 10, 10], status=TimeEntryStatus.APPROVED)
    _add_week(entries, WEEK_ONE, [8, 8, 8, 8, 8], status=TimeEntryStatus.APPROVED)

    (row,) = service.calculate_pay_period_hours(period, Policy())

    assert row.entry_count == 5
    assert row.overtime_hours == 0.0


def test_recalculate_straddling_week_writes_only_own_entries(service, entries, split_week):
    previous, current = split_week
    before = _add_week(entries, WEEK_ONE, [10, 10])
    after = _add_week(entries, WEEK_ONE + timedelta(days=2), [8, 8, 8, 8, 8])

    assert service.recalculate_pay_period(current, Policy()) == 5
    assert [entries.get_by_id(e.entry_id).overtime_minutes for e in before] == [0, 0]
    assert sum(entries.get_by_id(e.entry_id).overtime_minutes for e in after) == 800

    assert service.recalculate_pay_period(previous, Policy()) == 2
    stored = [entries.get_by_id(e.entry_id) for e in before + after]
    assert sum(e.overtime_minutes for e in stored) == 1200
    assert sum(e.regular_minutes for e in stored) == 2400
