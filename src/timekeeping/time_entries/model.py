from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..common.datetime_utils import hours_from_minutes, minutes_between, week_start
from ..core.enums import EntryType, TimeEntryStatus
from ..core.exceptions import ExportedEntryImmutableError


@dataclass(frozen=True)
class GpsPoint:
    latitude: float
    longitude: float

    def as_dict(self) -> dict:
        return {"lat": self.latitude, "lng": self.longitude}

    @classmethod
    def from_value(cls, value: Any) -> Optional["GpsPoint"]:
        """Accept a GpsPoint, a {lat, lng}/{latitude, longitude} mapping or None.

        Returns None unless both coordinates are present and numeric.
        """
        if value is None or isinstance(value, GpsPoint):
            return value
        if not isinstance(value, Mapping):
            return None
        lat = value.get("lat", value.get("latitude"))
        lng = value.get("lng", value.get("long", value.get("longitude")))
        if isinstance(lat, bool) or isinstance(lng, bool):
            return None
        try:
            lat, lng = float(lat), float(lng)
        except (TypeError, ValueError):
            return None
        if not (math.isfinite(lat) and math.isfinite(lng)):
            return None
        return cls(latitude=lat, longitude=lng)


@dataclass
class TimeEntry:
    """One clock-in/clock-out session."""

    employee_id: int
    company_id: int
    clock_in: datetime
    entry_type: EntryType = EntryType.CLOCK
    status: TimeEntryStatus = TimeEntryStatus.IN_PROGRESS
    entry_id: Optional[int] = None
    shift_id: Optional[int] = None
    pay_period_id: Optional[int] = None
    clock_out: Optional[datetime] = None

    total_minutes: int = 0
    break_minutes: int = 0
    regular_minutes: int = 0
    overtime_minutes: int = 0
    double_time_minutes: int = 0

    clock_in_ip: Optional[str] = None
    clock_in_gps: Optional[GpsPoint] = None
    clock_out_ip: Optional[str] = None
    clock_out_gps: Optional[GpsPoint] = None
    metadata: dict = field(default_factory=dict)

    exported_to_payroll: bool = False
    exported_at: Optional[datetime] = None
    payroll_batch_id: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None

    # Status checks

    def is_in_progress(self) -> bool:
        return self.status == TimeEntryStatus.IN_PROGRESS

    def is_completed(self) -> bool:
        return self.status == TimeEntryStatus.COMPLETED

    def is_approved(self) -> bool:
        return self.status == TimeEntryStatus.APPROVED

    def is_paid(self) -> bool:
        return self.status == TimeEntryStatus.PAID

    def is_pending(self) -> bool:
        return self.status not in (TimeEntryStatus.APPROVED, TimeEntryStatus.PAID)

    @property
    def is_locked(self) -> bool:
        """Exported entries are a point of no return."""
        return self.exported_to_payroll or self.is_paid()

    def ensure_mutable(self) -> None:
        if self.is_locked:
            raise ExportedEntryImmutableError(self.entry_id)

    # Durations

    def elapsed_minutes(self, now: Optional[datetime] = None) -> int:
        """Raw minutes on the clock; open entries run until ``now``."""
        end = self.clock_out or now or datetime.now()
        return minutes_between(self.clock_in, end)

    def elapsed_hours(self, now: Optional[datetime] = None) -> float:
        return hours_from_minutes(self.elapsed_minutes(now))

    @property
    def formatted_duration(self) -> str:
        return f"{self.total_minutes // 60}:{self.total_minutes % 60:02d}"

    @property
    def total_hours(self) -> float:
        return hours_from_minutes(self.total_minutes)

    @property
    def regular_hours(self) -> float:
        return hours_from_minutes(self.regular_minutes)

    @property
    def overtime_hours(self) -> float:
        return hours_from_minutes(self.overtime_minutes)

    @property
    def double_time_hours(self) -> float:
        return hours_from_minutes(self.double_time_minutes)

    @property
    def work_date(self) -> date:
        return self.clock_in.date()

    @property
    def work_week_start(self) -> date:
        return week_start(self.work_date)

    # Mutations used by the calculation layer

    def apply_minutes(
        self,
        *,
        total: int,
        breaks: int,
        regular: int,
        overtime: int = 0,
        double_time: int = 0,
    ) -> None:
        self.ensure_mutable()
        self.total_minutes = max(int(total), 0)
        self.break_minutes = max(int(breaks), 0)
        self.regular_minutes = max(int(regular), 0)
        self.overtime_minutes = max(int(overtime), 0)
        self.double_time_minutes = max(int(double_time), 0)

    def apply_classification(self, *, regular: int, overtime: int, double_time: int) -> None:
        self.ensure_mutable()
        self.regular_minutes = max(int(regular), 0)
        self.overtime_minutes = max(int(overtime), 0)
        self.double_time_minutes = max(int(double_time), 0)

    def copy(self) -> "TimeEntry":
        return replace(self, metadata=dict(self.metadata or {}))

    def update_from(self, other: "TimeEntry") -> None:
        for f in fields(self):
            setattr(self, f.name, getattr(other, f.name))

    def to_dict(self) -> dict:
        return {
            "id": self.entry_id,
            "employee_id": self.employee_id,
            "company_id": self.company_id,
            "shift_id": self.shift_id,
            "pay_period_id": self.pay_period_id,
            "entry_type": self.entry_type.value,
            "status": self.status.value,
            "clock_in": self.clock_in.isoformat(),
            "clock_out": self.clock_out.isoformat() if self.clock_out else None,
            "total_minutes": self.total_minutes,
            "break_minutes": self.break_minutes,
            "regular_minutes": self.regular_minutes,
            "overtime_minutes": self.overtime_minutes,
            "double_time_minutes": self.double_time_minutes,
            "duration": self.formatted_duration,
            "exported_to_payroll": self.exported_to_payroll,
            "payroll_batch_id": self.payroll_batch_id,
            "notes": self.notes,
        }
