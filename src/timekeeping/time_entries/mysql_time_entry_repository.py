from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

import mysql.connector

from ..core.enums import EntryType, TimeEntryStatus
from ..core.exceptions import AlreadyActiveEntryError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, is_duplicate_key, load_json
from .model import GpsPoint, TimeEntry
from .repository import TimeEntryRepository

_COLUMNS = """
    entry_id, employee_id, company_id, shift_id, pay_period_id, entry_type, status,
    clock_in, clock_out, total_minutes, break_minutes, regular_minutes,
    overtime_minutes, double_time_minutes, clock_in_ip, clock_in_gps,
    clock_out_ip, clock_out_gps, metadata, exported_to_payroll, exported_at,
    payroll_batch_id, approved_by, approved_at, rejected_by, rejected_at,
    rejection_reason, notes
"""


def _gps(value) -> Optional[GpsPoint]:
    data = load_json(value)
    return GpsPoint.from_value(data) if data else None


def _row_to_entry(r: dict) -> TimeEntry:
    return TimeEntry(
        entry_id=int(r["entry_id"]),
        employee_id=int(r["employee_id"]),
        company_id=int(r["company_id"]),
        shift_id=r.get("shift_id"),
        pay_period_id=r.get("pay_period_id"),
        entry_type=EntryType(r["entry_type"]),
        status=TimeEntryStatus(r["status"]),
        clock_in=r["clock_in"],
        clock_out=r.get("clock_out"),
        total_minutes=int(r.get("total_minutes") or 0),
        break_minutes=int(r.get("break_minutes") or 0),
        regular_minutes=int(r.get("regular_minutes") or 0),
        overtime_minutes=int(r.get("overtime_minutes") or 0),
        double_time_minutes=int(r.get("double_time_minutes") or 0),
        clock_in_ip=r.get("clock_in_ip"),
        clock_in_gps=_gps(r.get("clock_in_gps")),
        clock_out_ip=r.get("clock_out_ip"),
        clock_out_gps=_gps(r.get("clock_out_gps")),
        metadata=load_json(r.get("metadata")) or {},
        exported_to_payroll=bool(r.get("exported_to_payroll")),
        exported_at=r.get("exported_at"),
        payroll_batch_id=r.get("payroll_batch_id"),
        approved_by=r.get("approved_by"),
        approved_at=r.get("approved_at"),
        rejected_by=r.get("rejected_by"),
        rejected_at=r.get("rejected_at"),
        rejection_reason=r.get("rejection_reason"),
        notes=r.get("notes"),
    )


def _gps_json(point: Optional[GpsPoint]) -> Optional[str]:
    return dump_json(point.as_dict()) if point else None


class MySQLTimeEntryRepository(TimeEntryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, entry: TimeEntry) -> TimeEntry:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO time_entries(
                        employee_id, company_id, shift_id, pay_period_id, entry_type, status,
                        clock_in, clock_out, total_minutes, break_minutes, regular_minutes,
                        overtime_minutes, double_time_minutes, clock_in_ip, clock_in_gps,
                        clock_out_ip, clock_out_gps, metadata, approved_by, approved_at, notes
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        entry.employee_id,
                        entry.company_id,
                        entry.shift_id,
                        entry.pay_period_id,
                        entry.entry_type.value,
                        entry.status.value,
                        entry.clock_in,
                        entry.clock_out,
                        entry.total_minutes,
                        entry.break_minutes,
                        entry.regular_minutes,
                        entry.overtime_minutes,
                        entry.double_time_minutes,
                        entry.clock_in_ip,
                        _gps_json(entry.clock_in_gps),
                        entry.clock_out_ip,
                        _gps_json(entry.clock_out_gps),
                        dump_json(entry.metadata or {}),
                        entry.approved_by,
                        entry.approved_at,
                        entry.notes,
                    ),
                )
                entry.entry_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as exc:
            if is_duplicate_key(exc):
                raise AlreadyActiveEntryError() from exc
            raise
        return entry

    def get_by_id(self, entry_id: int) -> Optional[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM time_entries WHERE entry_id=%s", (int(entry_id),))
            r = fetchone(cur)
            return _row_to_entry(r) if r else None

    def get_active_for_employee(self, *, employee_id: int, company_id: int) -> Optional[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM time_entries
                WHERE employee_id=%s AND company_id=%s AND status=%s
                LIMIT 1
                """,
                (int(employee_id), int(company_id), TimeEntryStatus.IN_PROGRESS.value),
            )
            r = fetchone(cur)
            return _row_to_entry(r) if r else None

    def list_in_progress_for_company(self, *, company_id: int, started_before: datetime) -> Sequence[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM time_entries
                WHERE company_id=%s AND status=%s AND clock_out IS NULL AND clock_in < %s
                ORDER BY clock_in
                """,
                (int(company_id), TimeEntryStatus.IN_PROGRESS.value, started_before),
            )
            return [_row_to_entry(r) for r in fetchall(cur)]

    def complete_clock_out(self, entry: TimeEntry) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE time_entries
                SET clock_out=%s, clock_out_ip=%s, clock_out_gps=%s, metadata=%s,
                    status=%s, total_minutes=%s, break_minutes=%s, regular_minutes=%s,
                    overtime_minutes=%s, double_time_minutes=%s, approved_by=%s, approved_at=%s
                WHERE entry_id=%s AND clock_out IS NULL
                """,
                (
                    entry.clock_out,
                    entry.clock_out_ip,
                    _gps_json(entry.clock_out_gps),
                    dump_json(entry.metadata or {}),
                    entry.status.value,
                    entry.total_minutes,
                    entry.break_minutes,
                    entry.regular_minutes,
                    entry.overtime_minutes,
                    entry.double_time_minutes,
                    entry.approved_by,
                    entry.approved_at,
                    int(entry.entry_id),
                ),
            )
            return cur.rowcount > 0

    def save(self, entry: TimeEntry) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE time_entries
                SET status=%s, total_minutes=%s, break_minutes=%s, regular_minutes=%s,
                    overtime_minutes=%s, double_time_minutes=%s, approved_by=%s, approved_at=%s,
                    rejected_by=%s, rejected_at=%s, rejection_reason=%s, notes=%s
                WHERE entry_id=%s AND exported_to_payroll=0
                """,
                (
                    entry.status.value,
                    entry.total_minutes,
                    entry.break_minutes,
                    entry.regular_minutes,
                    entry.overtime_minutes,
                    entry.double_time_minutes,
                    entry.approved_by,
                    entry.approved_at,
                    entry.rejected_by,
                    entry.rejected_at,
                    entry.rejection_reason,
                    entry.notes,
                    int(entry.entry_id),
                ),
            )

    def list_between(
        self,
        *,
        company_id: int,
        start: datetime,
        end: datetime,
        statuses: Optional[Iterable[TimeEntryStatus]] = None,
        employee_id: Optional[int] = None,
    ) -> Sequence[TimeEntry]:
        clauses = ["company_id=%s", "clock_in >= %s", "clock_in < %s"]
        params: list[object] = [int(company_id), start, end]

        if statuses is not None:
            values = [s.value for s in statuses]
            if not values:
                return []
            clauses.append(f"status IN ({','.join(['%s'] * len(values))})")
            params.extend(values)
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(int(employee_id))

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM time_entries
                WHERE {where}
                ORDER BY employee_id ASC, clock_in ASC
                """,
                tuple(params),
            )
            return [_row_to_entry(r) for r in fetchall(cur)]

    def approve_completed_between(
        self,
        *,
        company_id: int,
        start: datetime,
        end: datetime,
        approved_by: int,
        approved_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE time_entries
                SET status=%s, approved_by=%s, approved_at=%s
                WHERE company_id=%s AND clock_in >= %s AND clock_in < %s
                  AND status=%s AND exported_to_payroll=0
                """,
                (
                    TimeEntryStatus.APPROVED.value,
                    int(approved_by),
                    approved_at,
                    int(company_id),
                    start,
                    end,
                    TimeEntryStatus.COMPLETED.value,
                ),
            )
            return int(cur.rowcount)

    def mark_exported_between(
        self,
        *,
        company_id: int,
        start: datetime,
        end: datetime,
        batch_id: str,
        exported_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE time_entries
                SET exported_to_payroll=1, exported_at=%s, payroll_batch_id=%s, status=%s
                WHERE company_id=%s AND clock_in >= %s AND clock_in < %s
                  AND status=%s AND exported_to_payroll=0
                """,
                (
                    exported_at,
                    batch_id,
                    TimeEntryStatus.PAID.value,
                    int(company_id),
                    start,
                    end,
                    TimeEntryStatus.APPROVED.value,
                ),
            )
            return int(cur.rowcount)
