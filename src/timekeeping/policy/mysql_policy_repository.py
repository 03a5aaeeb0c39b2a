from __future__ import annotations

from typing import Any, Mapping, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, load_json
from .model import Policy
from .repository import PolicyRepository


class MySQLPolicyRepository(PolicyRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, defaults: Optional[Mapping[str, Any]] = None):
        self._conn_factory = conn_factory
        self._defaults = dict(defaults or {})

    def get_for_company(self, company_id: int) -> Policy:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT settings
                FROM company_hr_settings
                WHERE company_id=%s
                """,
                (int(company_id),),
            )
            r = fetchone(cur)

        data = dict(self._defaults)
        if r and r.get("settings"):
            data.update(load_json(r["settings"]) or {})
        return Policy.from_mapping(data)
