from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol

from ..core.enums import PayFrequency, PayPeriodStatus
from .model import PayPeriod


class PayPeriodRepository(Protocol):
    def get_by_id(self, period_id: int) -> Optional[PayPeriod]:
        raise NotImplementedError

    def find(
        self,
        *,
        company_id: int,
        frequency: PayFrequency,
        start_date: date,
        end_date: date,
    ) -> Optional[PayPeriod]:
        raise NotImplementedError

    def create(self, period: PayPeriod) -> PayPeriod:
        """Insert; raises PeriodAlreadyExistsError on a duplicate range."""

        raise NotImplementedError

    def update_status(
        self,
        *,
        period_id: int,
        status: PayPeriodStatus,
        approved_by: Optional[int] = None,
        approved_at: Optional[datetime] = None,
    ) -> bool:
        raise NotImplementedError
