from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MinuteBreakdown:
    """First-pass split of a single entry, before weekly classification."""

    total_minutes: int = 0
    regular_minutes: int = 0
    overtime_minutes: int = 0
    break_minutes: int = 0


@dataclass(frozen=True)
class MinuteBuckets:
    regular: int = 0
    overtime: int = 0
    double_time: int = 0

    @property
    def total(self) -> int:
        return self.regular + self.overtime + self.double_time


@dataclass(frozen=True)
class WeeklyOvertime:
    regular_minutes: int = 0
    overtime_minutes: int = 0
    double_time_minutes: int = 0

    @property
    def total_minutes(self) -> int:
        return self.regular_minutes + self.overtime_minutes + self.double_time_minutes

    @classmethod
    def from_buckets(cls, buckets) -> "WeeklyOvertime":
        buckets = list(buckets)
        return cls(
            regular_minutes=sum(b.regular for b in buckets),
            overtime_minutes=sum(b.overtime for b in buckets),
            double_time_minutes=sum(b.double_time for b in buckets),
        )

    def to_dict(self) -> dict:
        return {
            "regular_minutes": self.regular_minutes,
            "overtime_minutes": self.overtime_minutes,
            "double_time_minutes": self.double_time_minutes,
        }
