from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional


@dataclass(frozen=True)
class EmployeeHours:
    """Per-employee hours for a pay period, ready for payroll export."""

    employee_id: int
    name: Optional[str]
    email: Optional[str]
    entry_count: int
    total_hours: float
    regular_hours: float
    overtime_hours: float
    double_time_hours: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PayPeriodSummary:
    total_entries: int
    approved_entries: int
    pending_entries: int
    exported_entries: int
    not_exported_entries: int
    total_hours: float
    regular_hours: float
    overtime_hours: float
    unique_employees: int
    double_time_hours: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)
