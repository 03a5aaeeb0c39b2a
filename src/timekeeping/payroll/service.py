from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Callable, Iterable, Optional, Union

from ..common.datetime_utils import hours_from_minutes, now_local
from ..common.validators import require_non_empty
from ..core.enums import PayFrequency, PayPeriodStatus, TimeEntryStatus
from ..core.exceptions import PeriodAlreadyExistsError, ValidationError
from ..employees.repository import EmployeeRepository
from ..events import sink as events
from ..events.sink import EventSink, LoggingEventSink
from ..overtime.model import WeeklyOvertime
from ..overtime.service import OvertimeCalculationService
from ..pay_periods.model import PayPeriod
from ..pay_periods.repository import PayPeriodRepository
from ..policy.model import Policy
from ..time_entries.model import TimeEntry
from ..time_entries.repository import TimeEntryRepository
from .model import EmployeeHours, PayPeriodSummary
from .periods import iter_period_ranges

logger = logging.getLogger(__name__)

PAYABLE_STATUSES = (TimeEntryStatus.APPROVED, TimeEntryStatus.PAID)
CLASSIFIABLE_STATUSES = (TimeEntryStatus.COMPLETED, TimeEntryStatus.APPROVED, TimeEntryStatus.PAID)


def _group_by_employee(entries: Iterable[TimeEntry]) -> dict[int, list[TimeEntry]]:
    grouped: dict[int, list[TimeEntry]] = defaultdict(list)
    for e in entries:
        grouped[e.employee_id].append(e)
    return dict(sorted(grouped.items()))


def _group_by_week(entries: Iterable[TimeEntry]) -> dict[date, list[TimeEntry]]:
    grouped: dict[date, list[TimeEntry]] = defaultdict(list)
    for e in entries:
        grouped[e.work_week_start].append(e)
    return dict(sorted(grouped.items()))


def _split_by_period(entries: Iterable[TimeEntry], pay_period: PayPeriod) -> tuple[list[TimeEntry], list[TimeEntry]]:
    inside: list[TimeEntry] = []
    outside: list[TimeEntry] = []
    for e in entries:
        (inside if pay_period.contains(e.clock_in) else outside).append(e)
    return inside, outside


class PayrollTimeCalculationService:
    """Pay period lifecycle: generation, aggregation, approval and export marking."""

    def __init__(
        self,
        entries: TimeEntryRepository,
        pay_periods: PayPeriodRepository,
        employees: EmployeeRepository,
        *,
        overtime: Optional[OvertimeCalculationService] = None,
        events_sink: Optional[EventSink] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._entries = entries
        self._pay_periods = pay_periods
        self._employees = employees
        self._overtime = overtime or OvertimeCalculationService()
        self._events = events_sink or LoggingEventSink()
        self._now = clock

    def get_pay_period(self, period_id: int) -> Optional[PayPeriod]:
        return self._pay_periods.get_by_id(period_id)

    def _entries_in(
        self,
        pay_period: PayPeriod,
        *,
        statuses: Optional[Iterable[TimeEntryStatus]] = None,
        employee_id: Optional[int] = None,
        whole_weeks: bool = False,
    ) -> list[TimeEntry]:
        """Entries clocked in during the period.

        With ``whole_weeks`` the window widens to the Monday-Sunday work weeks
        the period touches.
        """
        start, end = pay_period.work_week_window if whole_weeks else pay_period.window
        return list(
            self._entries.list_between(
                company_id=pay_period.company_id,
                start=start,
                end=end,
                statuses=statuses,
                employee_id=employee_id,
            )
        )

    def _classify_weeks(
        self,
        entries: list[TimeEntry],
        pay_period: PayPeriod,
        policy: Policy,
        *,
        overtime_exempt: bool,
    ) -> WeeklyOvertime:
        """Totals for the period's own entries, each week classified whole."""
        regular = overtime = double_time = 0
        for week_entries in _group_by_week(entries).values():
            for entry, b in self._overtime.settle_week(week_entries, policy, overtime_exempt=overtime_exempt):
                if not pay_period.contains(entry.clock_in):
                    continue
                regular += b.regular
                overtime += b.overtime
                double_time += b.double_time
        return WeeklyOvertime(regular_minutes=regular, overtime_minutes=overtime, double_time_minutes=double_time)

    def calculate_pay_period_hours(
        self,
        pay_period: PayPeriod,
        policy: Policy,
        employee_id: Optional[int] = None,
    ) -> list[EmployeeHours]:
        """Approved and paid hours per employee, classified week by week.

        A work week that straddles a period edge is classified whole, so
        hours on both sides count toward the threshold; the period reports its
        own entries' share.
        """
        by_employee = _group_by_employee(
            self._entries_in(pay_period, statuses=PAYABLE_STATUSES, employee_id=employee_id, whole_weeks=True)
        )
        by_employee = {
            emp_id: emp_entries
            for emp_id, emp_entries in by_employee.items()
            if any(pay_period.contains(e.clock_in) for e in emp_entries)
        }
        people = self._employees.get_many(by_employee.keys())

        rows: list[EmployeeHours] = []
        for emp_id, emp_entries in by_employee.items():
            person = people.get(emp_id)
            inside, _ = _split_by_period(emp_entries, pay_period)
            totals = self._classify_weeks(
                emp_entries,
                pay_period,
                policy,
                overtime_exempt=bool(person and person.overtime_exempt),
            )
            rows.append(
                EmployeeHours(
                    employee_id=emp_id,
                    name=person.full_name if person else None,
                    email=person.email if person else None,
                    entry_count=len(inside),
                    total_hours=hours_from_minutes(sum(e.total_minutes for e in inside)),
                    regular_hours=hours_from_minutes(totals.regular_minutes),
                    overtime_hours=hours_from_minutes(totals.overtime_minutes),
                    double_time_hours=hours_from_minutes(totals.double_time_minutes),
                )
            )
        return rows

    def recalculate_pay_period(self, pay_period: PayPeriod, policy: Policy) -> int:
        """Write weekly classification onto the period's finished entries.

        Returns the number of entries saved. Weeks straddling a period edge
        are classified whole but only the period's entries are written;
        exported entries keep their stored split.
        """
        by_employee = _group_by_employee(
            self._entries_in(pay_period, statuses=CLASSIFIABLE_STATUSES, whole_weeks=True)
        )
        people = self._employees.get_many(by_employee.keys())

        saved = 0
        for emp_id, emp_entries in by_employee.items():
            person = people.get(emp_id)
            for week_entries in _group_by_week(emp_entries).values():
                inside, _ = _split_by_period(week_entries, pay_period)
                if not inside:
                    continue
                self._overtime.recalculate_week_entries(
                    week_entries,
                    policy,
                    overtime_exempt=bool(person and person.overtime_exempt),
                )
                for entry in inside:
                    if not entry.is_locked:
                        self._entries.save(entry)
                        saved += 1
        logger.info("pay period recalculated", extra={"period_id": pay_period.period_id, "saved": saved})
        return saved

    def approve_pay_period(self, pay_period: PayPeriod, approver_id: int) -> PayPeriod:
        if pay_period.status == PayPeriodStatus.CLOSED:
            raise ValidationError("Closed pay periods cannot be approved")

        now = self._now()
        start, end = pay_period.window
        cascaded = self._entries.approve_completed_between(
            company_id=pay_period.company_id,
            start=start,
            end=end,
            approved_by=int(approver_id),
            approved_at=now,
        )

        pay_period.status = PayPeriodStatus.APPROVED
        pay_period.approved_by = int(approver_id)
        pay_period.approved_at = now
        self._pay_periods.update_status(
            period_id=pay_period.period_id,
            status=pay_period.status,
            approved_by=pay_period.approved_by,
            approved_at=pay_period.approved_at,
        )

        self._events.emit(
            events.PAY_PERIOD_APPROVED,
            period_id=pay_period.period_id,
            company_id=pay_period.company_id,
            approved_by=pay_period.approved_by,
            entries_approved=cascaded,
        )
        return pay_period

    def mark_as_exported(self, pay_period: PayPeriod, batch_id: str) -> int:
        """Flip approved, not yet exported entries to paid. Returns how many changed."""
        batch_id = require_non_empty(batch_id, "Payroll batch id")
        start, end = pay_period.window
        count = self._entries.mark_exported_between(
            company_id=pay_period.company_id,
            start=start,
            end=end,
            batch_id=batch_id,
            exported_at=self._now(),
        )
        self._events.emit(
            events.ENTRIES_EXPORTED,
            period_id=pay_period.period_id,
            company_id=pay_period.company_id,
            batch_id=batch_id,
            entries_exported=count,
        )
        return count

    def generate_pay_periods(
        self,
        company_id: int,
        start_date: date,
        end_date: date,
        frequency: Union[PayFrequency, str],
    ) -> list[PayPeriod]:
        """Create the periods covering the range, reusing any that already exist."""
        try:
            frequency = PayFrequency(frequency)
        except ValueError:
            raise ValidationError(f"Unknown pay frequency: {frequency}")

        periods: list[PayPeriod] = []
        created = 0
        for period_start, period_end in iter_period_ranges(start_date, end_date, frequency):
            key = dict(company_id=company_id, frequency=frequency, start_date=period_start, end_date=period_end)
            existing = self._pay_periods.find(**key)
            if existing:
                periods.append(existing)
                continue

            try:
                period = self._pay_periods.create(PayPeriod(**key, status=PayPeriodStatus.OPEN))
                created += 1
            except PeriodAlreadyExistsError:
                period = self._pay_periods.find(**key)
            periods.append(period)

        self._events.emit(
            events.PAY_PERIODS_GENERATED,
            company_id=company_id,
            frequency=frequency.value,
            periods=len(periods),
            periods_created=created,
        )
        return periods

    def get_summary_statistics(self, pay_period: PayPeriod) -> PayPeriodSummary:
        total = pending = exported = 0
        total_minutes = regular_minutes = overtime_minutes = double_time_minutes = 0
        employees: set[int] = set()

        for e in self._entries_in(pay_period):
            total += 1
            if e.is_pending():
                pending += 1
            if e.exported_to_payroll:
                exported += 1
            total_minutes += e.total_minutes
            regular_minutes += e.regular_minutes
            overtime_minutes += e.overtime_minutes
            double_time_minutes += e.double_time_minutes
            employees.add(e.employee_id)

        return PayPeriodSummary(
            total_entries=total,
            approved_entries=total - pending,
            pending_entries=pending,
            exported_entries=exported,
            not_exported_entries=total - exported,
            total_hours=hours_from_minutes(total_minutes),
            regular_hours=hours_from_minutes(regular_minutes),
            overtime_hours=hours_from_minutes(overtime_minutes),
            unique_employees=len(employees),
            double_time_hours=hours_from_minutes(double_time_minutes),
        )
