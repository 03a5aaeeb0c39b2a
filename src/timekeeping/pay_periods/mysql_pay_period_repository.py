from __future__ import annotations

from datetime import date, datetime
from typing import Optional

import mysql.connector

from ..core.enums import PayFrequency, PayPeriodStatus
from ..core.exceptions import PeriodAlreadyExistsError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, is_duplicate_key
from .model import PayPeriod
from .repository import PayPeriodRepository


def _row_to_period(r: dict) -> PayPeriod:
    return PayPeriod(
        period_id=int(r["period_id"]),
        company_id=int(r["company_id"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        frequency=PayFrequency(r["frequency"]),
        status=PayPeriodStatus(r["status"]),
        approved_by=r.get("approved_by"),
        approved_at=r.get("approved_at"),
    )


class MySQLPayPeriodRepository(PayPeriodRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, period_id: int) -> Optional[PayPeriod]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT period_id, company_id, start_date, end_date, frequency, status, approved_by, approved_at
                FROM pay_periods
                WHERE period_id=%s
                """,
                (int(period_id),),
            )
            r = fetchone(cur)
            return _row_to_period(r) if r else None

    def find(
        self,
        *,
        company_id: int,
        frequency: PayFrequency,
        start_date: date,
        end_date: date,
    ) -> Optional[PayPeriod]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT period_id, company_id, start_date, end_date, frequency, status, approved_by, approved_at
                FROM pay_periods
                WHERE company_id=%s AND frequency=%s AND start_date=%s AND end_date=%s
                """,
                (int(company_id), frequency.value, start_date, end_date),
            )
            r = fetchone(cur)
            return _row_to_period(r) if r else None

    def create(self, period: PayPeriod) -> PayPeriod:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO pay_periods(company_id, start_date, end_date, frequency, status)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (
                        int(period.company_id),
                        period.start_date,
                        period.end_date,
                        period.frequency.value,
                        period.status.value,
                    ),
                )
                period.period_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as exc:
            if is_duplicate_key(exc):
                raise PeriodAlreadyExistsError(
                    f"Pay period {period.start_date}..{period.end_date} already exists"
                ) from exc
            raise
        return period

    def update_status(
        self,
        *,
        period_id: int,
        status: PayPeriodStatus,
        approved_by: Optional[int] = None,
        approved_at: Optional[datetime] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE pay_periods
                SET status=%s, approved_by=%s, approved_at=%s
                WHERE period_id=%s
                """,
                (status.value, approved_by, approved_at, int(period_id)),
            )
            return cur.rowcount > 0
