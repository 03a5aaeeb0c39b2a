from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..common.validators import (
    as_bool,
    optional_non_negative_float,
    require_non_negative_int,
)
from ..core.constants import (
    DEFAULT_BREAK_THRESHOLD_MINUTES,
    DEFAULT_REQUIRED_BREAK_MINUTES,
    DEFAULT_WEEKLY_OVERTIME_HOURS,
    MINUTES_PER_HOUR,
)
from ..core.enums import OvertimeJurisdiction
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class Policy:
    """Resolved HR settings for one company.

    Passed explicitly into every service call; services never look settings
    up on their own.
    """

    round_to_minutes: int = 0
    auto_deduct_breaks: bool = False
    break_threshold_minutes: int = DEFAULT_BREAK_THRESHOLD_MINUTES
    required_break_minutes: int = DEFAULT_REQUIRED_BREAK_MINUTES
    require_approval: bool = False
    approval_threshold_hours: Optional[float] = None
    state_overtime_rules: str = OvertimeJurisdiction.FEDERAL.value
    weekly_overtime_threshold_hours: float = DEFAULT_WEEKLY_OVERTIME_HOURS
    double_time_threshold_minutes: Optional[int] = None
    require_gps: bool = False
    allowed_ips: tuple[str, ...] = ()
    auto_clock_out_hours: Optional[float] = None

    @property
    def weekly_overtime_threshold_minutes(self) -> int:
        return int(round(self.weekly_overtime_threshold_hours * MINUTES_PER_HOUR))

    @property
    def jurisdiction(self) -> OvertimeJurisdiction:
        """Selected rule set; unknown values fall back to federal."""
        try:
            return OvertimeJurisdiction(str(self.state_overtime_rules).strip().lower())
        except ValueError:
            return OvertimeJurisdiction.FEDERAL

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Policy":
        """Build a policy from a loosely-typed settings mapping.

        Accepts either ``double_time_threshold_minutes`` or the settings-screen
        ``double_time_threshold_hours``. ``allowed_ips`` may be a list or a
        newline/comma separated string.
        """
        defaults = cls()

        def get(key: str, default: Any) -> Any:
            value = data.get(key)
            return default if value is None else value

        double_time = data.get("double_time_threshold_minutes")
        if double_time in (None, "") and data.get("double_time_threshold_hours") not in (None, ""):
            hours = optional_non_negative_float(data["double_time_threshold_hours"], "double_time_threshold_hours")
            double_time = int(round(hours * MINUTES_PER_HOUR))
        double_time = (
            None if double_time in (None, "") else require_non_negative_int(double_time, "double_time_threshold_minutes")
        )

        weekly = optional_non_negative_float(
            get("weekly_overtime_threshold_hours", defaults.weekly_overtime_threshold_hours),
            "weekly_overtime_threshold_hours",
        )
        if not weekly:
            raise ValidationError("weekly_overtime_threshold_hours must be greater than zero")

        return cls(
            round_to_minutes=require_non_negative_int(get("round_to_minutes", 0), "round_to_minutes"),
            auto_deduct_breaks=as_bool(get("auto_deduct_breaks", False)),
            break_threshold_minutes=require_non_negative_int(
                get("break_threshold_minutes", defaults.break_threshold_minutes), "break_threshold_minutes"
            ),
            required_break_minutes=require_non_negative_int(
                get("required_break_minutes", defaults.required_break_minutes), "required_break_minutes"
            ),
            require_approval=as_bool(get("require_approval", False)),
            approval_threshold_hours=optional_non_negative_float(
                data.get("approval_threshold_hours"), "approval_threshold_hours"
            ),
            state_overtime_rules=str(get("state_overtime_rules", defaults.state_overtime_rules)).strip().lower(),
            weekly_overtime_threshold_hours=weekly,
            double_time_threshold_minutes=double_time,
            require_gps=as_bool(get("require_gps", False)),
            allowed_ips=_parse_allowed_ips(data.get("allowed_ips")),
            auto_clock_out_hours=optional_non_negative_float(data.get("auto_clock_out_hours"), "auto_clock_out_hours"),
        )


def _parse_allowed_ips(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        value = value.replace(",", "\n").splitlines()
    return tuple(v.strip() for v in value if v and str(v).strip())
