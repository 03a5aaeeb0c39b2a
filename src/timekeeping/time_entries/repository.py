from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import TimeEntryStatus
from .model import TimeEntry


class TimeEntryRepository(Protocol):
    def create(self, entry: TimeEntry) -> TimeEntry:
        """Insert and return the entry with its id.

        Raises AlreadyActiveEntryError when the employee already has an
        in-progress entry (unique guard in storage).
        """

        raise NotImplementedError

    def get_by_id(self, entry_id: int) -> Optional[TimeEntry]:
        raise NotImplementedError

    def get_active_for_employee(self, *, employee_id: int, company_id: int) -> Optional[TimeEntry]:
        raise NotImplementedError

    def list_in_progress_for_company(self, *, company_id: int, started_before: datetime) -> Sequence[TimeEntry]:
        raise NotImplementedError

    def complete_clock_out(self, entry: TimeEntry) -> bool:
        """Persist clock-out fields only if the stored row has no clock-out yet."""

        raise NotImplementedError

    def save(self, entry: TimeEntry) -> None:
        """Persist status, minute and approval fields of a non-exported entry."""

        raise NotImplementedError

    def list_between(
        self,
        *,
        company_id: int,
        start: datetime,
        end: datetime,
        statuses: Optional[Iterable[TimeEntryStatus]] = None,
        employee_id: Optional[int] = None,
    ) -> Sequence[TimeEntry]:
        """Entries whose clock_in falls in the half-open window [start, end)."""

        raise NotImplementedError

    def approve_completed_between(
        self,
        *,
        company_id: int,
        start: datetime,
        end: datetime,
        approved_by: int,
        approved_at: datetime,
    ) -> int:
        raise NotImplementedError

    def mark_exported_between(
        self,
        *,
        company_id: int,
        start: datetime,
        end: datetime,
        batch_id: str,
        exported_at: datetime,
    ) -> int:
        raise NotImplementedError
