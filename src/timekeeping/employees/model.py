from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Employee:
    """Authenticated employee as handed to the time clock."""

    employee_id: int
    company_id: int
    full_name: str
    email: Optional[str] = None
    overtime_exempt: bool = False
