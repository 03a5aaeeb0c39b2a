from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from ..common.datetime_utils import day_bounds, week_start
from ..core.enums import PayFrequency, PayPeriodStatus


@dataclass
class PayPeriod:
    """Company-scoped date range (inclusive) aggregated for payroll."""

    company_id: int
    start_date: date
    end_date: date
    frequency: PayFrequency
    status: PayPeriodStatus = PayPeriodStatus.OPEN
    period_id: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None

    @property
    def window(self) -> tuple[datetime, datetime]:
        """Half-open clock-in window covering every day of the period."""
        return day_bounds(self.start_date, self.end_date)

    @property
    def work_week_window(self) -> tuple[datetime, datetime]:
        """The window widened to whole Monday-Sunday weeks."""
        return day_bounds(week_start(self.start_date), week_start(self.end_date) + timedelta(days=6))

    @property
    def key(self) -> tuple[int, str, date, date]:
        return (self.company_id, self.frequency.value, self.start_date, self.end_date)

    def contains(self, moment: datetime) -> bool:
        start, end = self.window
        return start <= moment < end

    def to_dict(self) -> dict:
        return {
            "id": self.period_id,
            "company_id": self.company_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "frequency": self.frequency.value,
            "status": self.status.value,
            "approved_by": self.approved_by,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
        }
