from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.repository import EmployeeRepository
from .events.sink import EventSink, LoggingEventSink
from .overtime.factory import OvertimeRuleFactory
from .overtime.service import OvertimeCalculationService
from .pay_periods.mysql_pay_period_repository import MySQLPayPeriodRepository
from .pay_periods.repository import PayPeriodRepository
from .payroll.service import PayrollTimeCalculationService
from .policy.mysql_policy_repository import MySQLPolicyRepository
from .policy.repository import PolicyRepository
from .shifts.mysql_shift_repository import MySQLScheduleRepository, MySQLShiftRepository
from .shifts.repository import ScheduleRepository, ShiftRepository
from .time_entries.mysql_time_entry_repository import MySQLTimeEntryRepository
from .time_entries.repository import TimeEntryRepository
from .timeclock.service import TimeClockService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    employees_repo: EmployeeRepository
    policies_repo: PolicyRepository
    shifts_repo: ShiftRepository
    schedules_repo: ScheduleRepository
    entries_repo: TimeEntryRepository
    pay_periods_repo: PayPeriodRepository

    overtime_service: OvertimeCalculationService
    timeclock_service: TimeClockService
    payroll_service: PayrollTimeCalculationService


def assemble_container(
    *,
    employees_repo: EmployeeRepository,
    policies_repo: PolicyRepository,
    shifts_repo: ShiftRepository,
    schedules_repo: ScheduleRepository,
    entries_repo: TimeEntryRepository,
    pay_periods_repo: PayPeriodRepository,
    conn: Optional[DatabaseConnection] = None,
    events_sink: Optional[EventSink] = None,
    clock=None,
) -> Container:
    """Wire services over the given repositories."""
    events_sink = events_sink or LoggingEventSink()
    clock_kwargs = {"clock": clock} if clock else {}

    overtime_service = OvertimeCalculationService(rule_factory=OvertimeRuleFactory())
    timeclock_service = TimeClockService(
        entries_repo,
        employees_repo,
        policies_repo,
        schedules_repo,
        overtime=overtime_service,
        events_sink=events_sink,
        **clock_kwargs,
    )
    payroll_service = PayrollTimeCalculationService(
        entries_repo,
        pay_periods_repo,
        employees_repo,
        overtime=overtime_service,
        events_sink=events_sink,
        **clock_kwargs,
    )

    return Container(
        conn=conn,
        employees_repo=employees_repo,
        policies_repo=policies_repo,
        shifts_repo=shifts_repo,
        schedules_repo=schedules_repo,
        entries_repo=entries_repo,
        pay_periods_repo=pay_periods_repo,
        overtime_service=overtime_service,
        timeclock_service=timeclock_service,
        payroll_service=payroll_service,
    )


def build_container(*, db_config: dict, default_policy: Optional[Mapping[str, Any]] = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    return assemble_container(
        conn=conn,
        employees_repo=MySQLEmployeeRepository(conn),
        policies_repo=MySQLPolicyRepository(conn, defaults=default_policy),
        shifts_repo=MySQLShiftRepository(conn),
        schedules_repo=MySQLScheduleRepository(conn),
        entries_repo=MySQLTimeEntryRepository(conn),
        pay_periods_repo=MySQLPayPeriodRepository(conn),
    )
