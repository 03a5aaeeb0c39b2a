from __future__ import annotations

from typing import Iterable, Mapping, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee
from .repository import EmployeeRepository


def _row_to_employee(r: dict) -> Employee:
    return Employee(
        employee_id=int(r["employee_id"]),
        company_id=int(r["company_id"]),
        full_name=r["full_name"],
        email=r.get("email"),
        overtime_exempt=bool(r.get("overtime_exempt")),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT employee_id, company_id, full_name, email, overtime_exempt
                FROM employees
                WHERE employee_id=%s
                """,
                (int(employee_id),),
            )
            r = fetchone(cur)
            return _row_to_employee(r) if r else None

    def get_many(self, employee_ids: Iterable[int]) -> Mapping[int, Employee]:
        ids = sorted({int(i) for i in employee_ids})
        if not ids:
            return {}
        placeholders = ",".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT employee_id, company_id, full_name, email, overtime_exempt
                FROM employees
                WHERE employee_id IN ({placeholders})
                """,
                tuple(ids),
            )
            return {e.employee_id: e for e in map(_row_to_employee, fetchall(cur))}
