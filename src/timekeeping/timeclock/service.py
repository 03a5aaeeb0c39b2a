from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_local, round_time
from ..common.locks import KeyedLock
from ..common.network import ip_allowed
from ..common.validators import require_non_empty
from ..core.constants import MINUTES_PER_HOUR
from ..core.enums import EntryType, OutcomeStatus, TimeEntryStatus
from ..core.exceptions import (
    AlreadyActiveEntryError,
    AlreadyClockedOutError,
    ClockInValidationError,
    DomainError,
    ValidationError,
)
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from ..events import sink as events
from ..events.sink import EventSink, LoggingEventSink
from ..overtime.service import OvertimeCalculationService
from ..policy.model import Policy
from ..policy.repository import PolicyRepository
from ..shifts.repository import ScheduleRepository
from ..time_entries.model import TimeEntry
from ..time_entries.repository import TimeEntryRepository
from .model import AutoClockOutOutcome, ClockContext, ClockResult, ValidationResult

logger = logging.getLogger(__name__)

GPS_REQUIRED = "GPS location is required to clock in"
IP_NOT_ALLOWED = "Clock-in is not allowed from this IP address"


class TimeClockService:
    """Clock-in/clock-out state machine.

    An employee has at most one in-progress entry. The check and the insert
    run under a per-employee lock, and the repository's uniqueness guard
    catches writers from other processes; either way the loser gets
    ``AlreadyActiveEntryError``. Clock-out is a conditional update, so a
    second writer on the same entry gets ``AlreadyClockedOutError``.
    """

    def __init__(
        self,
        entries: TimeEntryRepository,
        employees: EmployeeRepository,
        policies: PolicyRepository,
        schedules: Optional[ScheduleRepository] = None,
        *,
        overtime: Optional[OvertimeCalculationService] = None,
        events_sink: Optional[EventSink] = None,
        locks: Optional[KeyedLock] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._entries = entries
        self._employees = employees
        self._policies = policies
        self._schedules = schedules
        self._overtime = overtime or OvertimeCalculationService()
        self._events = events_sink or LoggingEventSink()
        self._locks = locks or KeyedLock()
        self._now = clock

    # Lookups

    def get_active_entry(self, employee: Employee) -> Optional[TimeEntry]:
        return self._entries.get_active_for_employee(
            employee_id=employee.employee_id,
            company_id=employee.company_id,
        )

    def has_active_entry(self, employee: Employee) -> bool:
        return self.get_active_entry(employee) is not None

    def _effective_shift_id(self, employee: Employee, work_date: date) -> Optional[int]:
        if not self._schedules:
            return None
        sc = self._schedules.get_for_employee_and_date(employee_id=employee.employee_id, work_date=work_date)
        return sc.shift_id if sc else None

    def _is_exempt(self, employee_id: int) -> bool:
        employee = self._employees.get_by_id(employee_id)
        return bool(employee and employee.overtime_exempt)

    @staticmethod
    def _requires_approval(policy: Policy, total_minutes: int) -> bool:
        if not policy.require_approval:
            return False
        threshold = policy.approval_threshold_hours
        if threshold is not None and total_minutes / MINUTES_PER_HOUR <= threshold:
            return False
        return True

    def _settle_status(self, entry: TimeEntry, policy: Policy, now: datetime) -> None:
        if self._requires_approval(policy, entry.total_minutes):
            entry.status = TimeEntryStatus.COMPLETED
        else:
            entry.status = TimeEntryStatus.APPROVED
            entry.approved_at = now

    # Pre-flight

    def _policy_errors(self, policy: Policy, context: ClockContext) -> list[str]:
        errors = []
        if policy.require_gps and not context.has_gps:
            errors.append(GPS_REQUIRED)
        if policy.allowed_ips and not ip_allowed(context.ip, policy.allowed_ips):
            errors.append(IP_NOT_ALLOWED)
        return errors

    def validate_clock_in(
        self,
        employee: Employee,
        policy: Policy,
        context: Optional[ClockContext] = None,
    ) -> ValidationResult:
        """Report every reason a clock-in would be refused, without raising."""
        context = context or ClockContext()
        errors = []
        if self.has_active_entry(employee):
            errors.append(str(AlreadyActiveEntryError()))
        errors.extend(self._policy_errors(policy, context))
        return ValidationResult(errors=tuple(errors))

    # State machine

    def clock_in(
        self,
        employee: Employee,
        policy: Policy,
        context: Optional[ClockContext] = None,
    ) -> ClockResult:
        context = context or ClockContext()

        with self._locks.hold((employee.company_id, employee.employee_id)):
            if self.has_active_entry(employee):
                logger.warning(
                    "clock-in refused: active entry exists",
                    extra={"employee_id": employee.employee_id, "company_id": employee.company_id},
                )
                return ClockResult.failure(AlreadyActiveEntryError())

            errors = self._policy_errors(policy, context)
            if errors:
                return ClockResult.failure(ClockInValidationError(errors))

            clock_in = round_time(self._now(), policy.round_to_minutes)
            entry = TimeEntry(
                employee_id=employee.employee_id,
                company_id=employee.company_id,
                entry_type=EntryType.CLOCK,
                status=TimeEntryStatus.IN_PROGRESS,
                clock_in=clock_in,
                shift_id=self._effective_shift_id(employee, clock_in.date()),
                clock_in_ip=context.ip,
                clock_in_gps=context.gps,
                metadata=dict(context.metadata),
            )
            try:
                entry = self._entries.create(entry)
            except AlreadyActiveEntryError as exc:
                return ClockResult.failure(exc)

        self._events.emit(
            events.CLOCKED_IN,
            entry_id=entry.entry_id,
            employee_id=entry.employee_id,
            company_id=entry.company_id,
            clock_in=entry.clock_in,
        )
        return ClockResult.success(entry)

    def clock_out(
        self,
        entry: TimeEntry,
        policy: Policy,
        context: Optional[ClockContext] = None,
    ) -> ClockResult:
        context = context or ClockContext()

        with self._locks.hold((entry.company_id, entry.employee_id)):
            if entry.clock_out is not None:
                return ClockResult.failure(AlreadyClockedOutError(), entry)

            now = self._now()
            closed = entry.copy()
            closed.clock_out = round_time(now, policy.round_to_minutes)
            closed.clock_out_ip = context.ip
            closed.clock_out_gps = context.gps
            closed.metadata.update(context.metadata)

            breakdown = self._overtime.calculate_overtime_minutes(
                closed,
                policy,
                overtime_exempt=self._is_exempt(entry.employee_id),
            )
            closed.apply_minutes(
                total=breakdown.total_minutes,
                breaks=breakdown.break_minutes,
                regular=breakdown.regular_minutes,
                overtime=breakdown.overtime_minutes,
            )
            self._settle_status(closed, policy, now)

            if not self._entries.complete_clock_out(closed):
                logger.warning("clock-out lost to a concurrent writer", extra={"entry_id": entry.entry_id})
                return ClockResult.failure(AlreadyClockedOutError(), entry)
            entry.update_from(closed)

        self._events.emit(
            events.CLOCKED_OUT,
            entry_id=entry.entry_id,
            employee_id=entry.employee_id,
            company_id=entry.company_id,
            clock_out=entry.clock_out,
            total_minutes=entry.total_minutes,
            status=entry.status.value,
        )
        return ClockResult.success(entry)

    def auto_clock_out_stale_entries(self, company_id: int) -> list[AutoClockOutOutcome]:
        """Force clock-out of entries left open longer than the policy allows.

        Safe to re-run: closed entries drop out of the stale set.
        """
        policy = self._policies.get_for_company(company_id)
        if not policy.auto_clock_out_hours:
            return []

        cutoff = self._now() - timedelta(hours=policy.auto_clock_out_hours)
        stale = self._entries.list_in_progress_for_company(company_id=company_id, started_before=cutoff)
        context = ClockContext(
            metadata={
                "auto_clock_out": True,
                "auto_clock_out_reason": f"Open longer than {policy.auto_clock_out_hours:g} hours",
            }
        )

        outcomes: list[AutoClockOutOutcome] = []
        for entry in stale:
            try:
                result = self.clock_out(entry, policy, context)
            except Exception as exc:
                logger.exception("auto clock-out failed", extra={"entry_id": entry.entry_id})
                result = ClockResult.failure(DomainError(str(exc)), entry)

            if result.ok:
                outcomes.append(AutoClockOutOutcome(entry_id=entry.entry_id, status=OutcomeStatus.SUCCESS))
                self._events.emit(
                    events.AUTO_CLOCKED_OUT,
                    entry_id=entry.entry_id,
                    employee_id=entry.employee_id,
                    company_id=entry.company_id,
                    clock_in=entry.clock_in,
                    clock_out=entry.clock_out,
                )
            else:
                outcomes.append(
                    AutoClockOutOutcome(
                        entry_id=entry.entry_id,
                        status=OutcomeStatus.FAILURE,
                        reason=str(result.error),
                    )
                )

        failed = sum(1 for o in outcomes if o.status == OutcomeStatus.FAILURE)
        logger.info(
            "auto clock-out finished",
            extra={"company_id": company_id, "processed": len(outcomes), "failed": failed},
        )
        return outcomes

    # Manual entries and review

    def create_manual_entry(
        self,
        employee: Employee,
        policy: Policy,
        *,
        clock_in: datetime,
        clock_out: datetime,
        break_minutes: int = 0,
        notes: Optional[str] = None,
    ) -> TimeEntry:
        if clock_out <= clock_in:
            raise ValidationError("Clock-out must be after clock-in")
        if break_minutes < 0:
            raise ValidationError("Break minutes cannot be negative")

        entry = TimeEntry(
            employee_id=employee.employee_id,
            company_id=employee.company_id,
            entry_type=EntryType.MANUAL,
            clock_in=clock_in,
            clock_out=clock_out,
            break_minutes=int(break_minutes),
            shift_id=self._effective_shift_id(employee, clock_in.date()),
            notes=notes,
        )
        breakdown = self._overtime.calculate_overtime_minutes(
            entry,
            policy,
            overtime_exempt=employee.overtime_exempt,
        )
        entry.apply_minutes(
            total=breakdown.total_minutes,
            breaks=breakdown.break_minutes,
            regular=breakdown.regular_minutes,
            overtime=breakdown.overtime_minutes,
        )
        self._settle_status(entry, policy, self._now())
        return self._entries.create(entry)

    def approve_entry(self, entry: TimeEntry, approver_id: int) -> TimeEntry:
        entry.ensure_mutable()
        if not entry.is_completed():
            raise ValidationError("Only completed time entries can be approved")

        entry.status = TimeEntryStatus.APPROVED
        entry.approved_by = int(approver_id)
        entry.approved_at = self._now()
        self._entries.save(entry)
        self._events.emit(events.ENTRY_APPROVED, entry_id=entry.entry_id, approved_by=entry.approved_by)
        return entry

    def reject_entry(self, entry: TimeEntry, rejecter_id: int, reason: str) -> TimeEntry:
        entry.ensure_mutable()
        if not (entry.is_completed() or entry.is_approved()):
            raise ValidationError("Only finished time entries can be rejected")

        entry.status = TimeEntryStatus.REJECTED
        entry.rejection_reason = require_non_empty(reason, "Rejection reason")
        entry.rejected_by = int(rejecter_id)
        entry.rejected_at = self._now()
        self._entries.save(entry)
        self._events.emit(events.ENTRY_REJECTED, entry_id=entry.entry_id, rejected_by=entry.rejected_by)
        return entry
