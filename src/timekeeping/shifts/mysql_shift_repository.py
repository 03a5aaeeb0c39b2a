from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import EmployeeSchedule, Shift
from .repository import ScheduleRepository, ShiftRepository


def _parse_days(value) -> frozenset[int]:
    if not value:
        return frozenset()
    return frozenset(int(d) for d in str(value).split(",") if d.strip())


def _row_to_shift(r: dict) -> Shift:
    return Shift(
        shift_id=int(r["shift_id"]),
        company_id=int(r["company_id"]),
        shift_name=r["shift_name"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_time=normalize_mysql_time(r["end_time"]),
        break_minutes=int(r.get("break_minutes") or 0),
        days_of_week=_parse_days(r.get("days_of_week")),
        is_active=bool(r.get("is_active", 1)),
    )


class MySQLShiftRepository(ShiftRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_company(self, company_id: int) -> Sequence[Shift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT shift_id, company_id, shift_name, start_time, end_time,
                       break_minutes, days_of_week, is_active
                FROM shifts
                WHERE company_id=%s
                ORDER BY shift_id
                """,
                (int(company_id),),
            )
            return [_row_to_shift(r) for r in fetchall(cur)]

    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT shift_id, company_id, shift_name, start_time, end_time,
                       break_minutes, days_of_week, is_active
                FROM shifts
                WHERE shift_id=%s
                """,
                (int(shift_id),),
            )
            r = fetchone(cur)
            return _row_to_shift(r) if r else None


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_employee_and_date(self, *, employee_id: int, work_date: date) -> Optional[EmployeeSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT schedule_id, employee_id, shift_id, work_date, note
                FROM employee_schedules
                WHERE employee_id=%s AND work_date=%s
                """,
                (int(employee_id), work_date),
            )
            r = fetchone(cur)
            if not r:
                return None
            return EmployeeSchedule(
                schedule_id=int(r["schedule_id"]),
                employee_id=int(r["employee_id"]),
                shift_id=int(r["shift_id"]),
                work_date=r["work_date"],
                note=r.get("note"),
            )
