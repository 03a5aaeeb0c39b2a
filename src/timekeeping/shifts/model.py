from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class Shift:
    """Reusable schedule template. Weekdays use Monday=0."""

    shift_id: int
    company_id: int
    shift_name: str
    start_time: time
    end_time: time
    break_minutes: int = 0
    days_of_week: FrozenSet[int] = field(default_factory=lambda: frozenset(range(5)))
    is_active: bool = True

    def runs_on(self, day: date) -> bool:
        return self.is_active and day.weekday() in self.days_of_week

    def to_dict(self) -> dict:
        return {
            "id": self.shift_id,
            "name": self.shift_name,
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "break_minutes": self.break_minutes,
            "days_of_week": sorted(self.days_of_week),
        }


@dataclass(frozen=True)
class EmployeeSchedule:
    """Planned assignment of a shift to an employee on a date."""

    schedule_id: int
    employee_id: int
    shift_id: int
    work_date: date
    note: Optional[str] = None
