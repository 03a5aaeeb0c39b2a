from __future__ import annotations

from enum import Enum


class EntryType(str, Enum):
    """How a time entry was created."""

    CLOCK = "clock"
    MANUAL = "manual"


class TimeEntryStatus(str, Enum):
    """Lifecycle of a time entry, from clock-in to payroll export."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class PayPeriodStatus(str, Enum):
    OPEN = "open"
    APPROVED = "approved"
    CLOSED = "closed"


class PayFrequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class OvertimeJurisdiction(str, Enum):
    """Overtime rule sets understood by the overtime rule factory."""

    FEDERAL = "federal"
    CALIFORNIA = "california"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class Role(str, Enum):
    """Session roles set by the host application's login."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"
