from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

logger = logging.getLogger("timekeeping.events")

CLOCKED_IN = "time_entry.clocked_in"
CLOCKED_OUT = "time_entry.clocked_out"
AUTO_CLOCKED_OUT = "time_entry.auto_clocked_out"
ENTRY_APPROVED = "time_entry.approved"
ENTRY_REJECTED = "time_entry.rejected"
PAY_PERIOD_APPROVED = "pay_period.approved"
ENTRIES_EXPORTED = "pay_period.exported"
PAY_PERIODS_GENERATED = "pay_period.generated"


class EventSink(Protocol):
    def emit(self, event: str, **fields: Any) -> None:
        raise NotImplementedError


class LoggingEventSink(EventSink):
    """Writes events as structured log records; delivery is up to the handlers."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger

    def emit(self, event: str, **fields: Any) -> None:
        self._log.info(event, extra={"event": event, **fields})
