"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MINUTES_PER_HOUR = 60

# Federal (FLSA) weekly threshold
DEFAULT_WEEKLY_OVERTIME_HOURS = 40

# California daily thresholds
CA_DAILY_REGULAR_MINUTES = 8 * 60
CA_DAILY_DOUBLE_TIME_MINUTES = 12 * 60

DEFAULT_BREAK_THRESHOLD_MINUTES = 360
DEFAULT_REQUIRED_BREAK_MINUTES = 30

# Hours are reported to payroll with this many decimals
HOURS_PRECISION = 2

PAY_PERIOD_DAYS = {
    "weekly": 7,
    "biweekly": 14,
}
