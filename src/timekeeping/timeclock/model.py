from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..core.enums import OutcomeStatus
from ..core.exceptions import DomainError
from ..time_entries.model import GpsPoint, TimeEntry


@dataclass(frozen=True)
class ClockContext:
    """Where a clock action came from: ip, gps and device metadata."""

    ip: Optional[str] = None
    gps: Optional[GpsPoint] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def has_gps(self) -> bool:
        return self.gps is not None

    @classmethod
    def from_payload(cls, payload: Any, *, ip: Optional[str] = None) -> "ClockContext":
        """Build a context from a request body.

        ``ip`` is the connection's address; an ``ip`` key in the body is ignored.
        Malformed gps reads as missing so the location rules report it.
        """
        if not isinstance(payload, Mapping):
            payload = {}
        gps = payload.get("gps")
        if gps is None and ("latitude" in payload or "lat" in payload):
            gps = payload
        metadata = payload.get("metadata")
        return cls(
            ip=ip,
            gps=GpsPoint.from_value(gps),
            metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
        )


@dataclass(frozen=True)
class ClockResult:
    """Outcome of a clock action: the entry, or the rule it broke."""

    entry: Optional[TimeEntry] = None
    error: Optional[DomainError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> TimeEntry:
        if self.error is not None:
            raise self.error
        return self.entry

    @classmethod
    def success(cls, entry: TimeEntry) -> "ClockResult":
        return cls(entry=entry)

    @classmethod
    def failure(cls, error: DomainError, entry: Optional[TimeEntry] = None) -> "ClockResult":
        return cls(entry=entry, error=error)


@dataclass(frozen=True)
class ValidationResult:
    errors: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class AutoClockOutOutcome:
    entry_id: Optional[int]
    status: OutcomeStatus
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {"entry_id": self.entry_id, "status": self.status.value, "reason": self.reason}
