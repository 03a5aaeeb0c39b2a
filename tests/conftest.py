from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pytest

from timekeeping.core.enums import PayFrequency, PayPeriodStatus, TimeEntryStatus
from timekeeping.core.exceptions import AlreadyActiveEntryError, PeriodAlreadyExistsError
from timekeeping.employees.model import Employee
from timekeeping.pay_periods.model import PayPeriod
from timekeeping.policy.model import Policy
from timekeeping.shifts.model import EmployeeSchedule
from timekeeping.time_entries.model import TimeEntry


class FixedClock:
    """Callable clock the tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class InMemoryEmployees:
    employees: dict[int, Employee] = field(default_factory=dict)

    def add(self, employee: Employee) -> Employee:
        self.employees[employee.employee_id] = employee
        return employee

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        return self.employees.get(int(employee_id))

    def get_many(self, employee_ids):
        return {i: self.employees[i] for i in employee_ids if i in self.employees}


@dataclass
class InMemoryPolicies:
    default: Policy = field(default_factory=Policy)
    by_company: dict[int, Policy] = field(default_factory=dict)

    def get_for_company(self, company_id: int) -> Policy:
        return self.by_company.get(int(company_id), self.default)


@dataclass
class InMemorySchedules:
    schedules: list[EmployeeSchedule] = field(default_factory=list)

    def get_for_employee_and_date(self, *, employee_id: int, work_date: date) -> Optional[EmployeeSchedule]:
        for sc in self.schedules:
            if sc.employee_id == employee_id and sc.work_date == work_date:
                return sc
        return None


@dataclass
class InMemoryShifts:
    shifts: dict[int, Any] = field(default_factory=dict)

    def list_for_company(self, company_id: int):
        return [s for s in self.shifts.values() if s.company_id == company_id]

    def get_by_id(self, shift_id: int):
        return self.shifts.get(shift_id)


class InMemoryTimeEntries:
    """Stores copies so services can't mutate rows behind the repository's back."""

    def __init__(self):
        self.rows: dict[int, TimeEntry] = {}
        self._next_id = 1

    def add(self, entry: TimeEntry) -> TimeEntry:
        entry.entry_id = self._next_id
        self._next_id += 1
        self.rows[entry.entry_id] = entry.copy()
        return entry

    def create(self, entry: TimeEntry) -> TimeEntry:
        if entry.status == TimeEntryStatus.IN_PROGRESS and self.get_active_for_employee(
            employee_id=entry.employee_id, company_id=entry.company_id
        ):
            raise AlreadyActiveEntryError()
        return self.add(entry.copy())

    def get_by_id(self, entry_id: int) -> Optional[TimeEntry]:
        row = self.rows.get(int(entry_id))
        return row.copy() if row else None

    def get_active_for_employee(self, *, employee_id: int, company_id: int) -> Optional[TimeEntry]:
        for row in self.rows.values():
            if row.employee_id == employee_id and row.company_id == company_id and row.is_in_progress():
                return row.copy()
        return None

    def list_in_progress_for_company(self, *, company_id: int, started_before: datetime):
        rows = [
            r
            for r in self.rows.values()
            if r.company_id == company_id and r.is_in_progress() and r.clock_out is None and r.clock_in < started_before
        ]
        return [r.copy() for r in sorted(rows, key=lambda r: r.clock_in)]

    def complete_clock_out(self, entry: TimeEntry) -> bool:
        row = self.rows.get(entry.entry_id)
        if row is None or row.clock_out is not None:
            return False
        self.rows[entry.entry_id] = entry.copy()
        return True

    def save(self, entry: TimeEntry) -> None:
        row = self.rows.get(entry.entry_id)
        if row is None or row.exported_to_payroll:
            return
        self.rows[entry.entry_id] = entry.copy()

    def _in_window(self, row: TimeEntry, company_id: int, start: datetime, end: datetime) -> bool:
        return row.company_id == company_id and start <= row.clock_in < end

    def list_between(self, *, company_id, start, end, statuses=None, employee_id=None):
        rows = [r for r in self.rows.values() if self._in_window(r, company_id, start, end)]
        if statuses is not None:
            wanted = set(statuses)
            rows = [r for r in rows if r.status in wanted]
        if employee_id is not None:
            rows = [r for r in rows if r.employee_id == employee_id]
        return [r.copy() for r in sorted(rows, key=lambda r: (r.employee_id, r.clock_in))]

    def approve_completed_between(self, *, company_id, start, end, approved_by, approved_at) -> int:
        count = 0
        for row in self.rows.values():
            if (
                self._in_window(row, company_id, start, end)
                and row.status == TimeEntryStatus.COMPLETED
                and not row.exported_to_payroll
            ):
                row.status = TimeEntryStatus.APPROVED
                row.approved_by = approved_by
                row.approved_at = approved_at
                count += 1
        return count

    def mark_exported_between(self, *, company_id, start, end, batch_id, exported_at) -> int:
        count = 0
        for row in self.rows.values():
            if (
                self._in_window(row, company_id, start, end)
                and row.status == TimeEntryStatus.APPROVED
                and not row.exported_to_payroll
            ):
                row.status = TimeEntryStatus.PAID
                row.exported_to_payroll = True
                row.exported_at = exported_at
                row.payroll_batch_id = batch_id
                count += 1
        return count


class InMemoryPayPeriods:
    def __init__(self):
        self.rows: dict[int, PayPeriod] = {}
        self._next_id = 1

    def get_by_id(self, period_id: int) -> Optional[PayPeriod]:
        return self.rows.get(int(period_id))

    def find(self, *, company_id, frequency, start_date, end_date) -> Optional[PayPeriod]:
        key = (company_id, PayFrequency(frequency).value, start_date, end_date)
        for p in self.rows.values():
            if p.key == key:
                return p
        return None

    def create(self, period: PayPeriod) -> PayPeriod:
        if self.find(
            company_id=period.company_id,
            frequency=period.frequency,
            start_date=period.start_date,
            end_date=period.end_date,
        ):
            raise PeriodAlreadyExistsError("duplicate")
        period.period_id = self._next_id
        self._next_id += 1
        self.rows[period.period_id] = period
        return period

    def update_status(self, *, period_id, status: PayPeriodStatus, approved_by=None, approved_at=None) -> bool:
        p = self.rows.get(period_id)
        if p is None:
            return False
        p.status = status
        p.approved_by = approved_by
        p.approved_at = approved_at
        return True


class RecordingEvents:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def emit(self, event: str, **fields) -> None:
        self.events.append((event, fields))

    def names(self) -> list[str]:
        return [e for e, _ in self.events]


def make_entry(
    clock_in: datetime,
    clock_out: Optional[datetime] = None,
    *,
    employee_id: int = 1,
    company_id: int = 10,
    status: TimeEntryStatus = TimeEntryStatus.COMPLETED,
    **kwargs,
) -> TimeEntry:
    """Finished entry whose minutes already reflect its clock times."""
    entry = TimeEntry(
        employee_id=employee_id,
        company_id=company_id,
        clock_in=clock_in,
        clock_out=clock_out,
        status=status,
        **kwargs,
    )
    if clock_out is not None and "total_minutes" not in kwargs:
        minutes = int((clock_out - clock_in).total_seconds() // 60) - entry.break_minutes
        entry.total_minutes = minutes
        entry.regular_minutes = minutes
    return entry


@pytest.fixture
def clock() -> FixedClock:
    # A Wednesday
    return FixedClock(datetime(2024, 3, 6, 9, 0))


@pytest.fixture
def employee() -> Employee:
    return Employee(employee_id=1, company_id=10, full_name="Ana Lopez", email="ana@example.com")


@pytest.fixture
def exempt_employee() -> Employee:
    return Employee(employee_id=2, company_id=10, full_name="Sam Reed", overtime_exempt=True)


@pytest.fixture
def employees(employee, exempt_employee) -> InMemoryEmployees:
    repo = InMemoryEmployees()
    repo.add(employee)
    repo.add(exempt_employee)
    return repo


@pytest.fixture
def policies() -> InMemoryPolicies:
    return InMemoryPolicies()


@pytest.fixture
def entries() -> InMemoryTimeEntries:
    return InMemoryTimeEntries()


@pytest.fixture
def pay_periods() -> InMemoryPayPeriods:
    return InMemoryPayPeriods()


@pytest.fixture
def schedules() -> InMemorySchedules:
    return InMemorySchedules()


@pytest.fixture
def events() -> RecordingEvents:
    return RecordingEvents()
