import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "timekeeping"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timekeeping_db"),
}

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = bool(int(os.getenv("LOG_JSON", "1")))

DEFAULT_POLICY = {
    "round_to_minutes": int(os.getenv("DEFAULT_ROUND_TO_MINUTES", "0")),
    "auto_deduct_breaks": bool(int(os.getenv("DEFAULT_AUTO_DEDUCT_BREAKS", "0"))),
    "require_approval": bool(int(os.getenv("DEFAULT_REQUIRE_APPROVAL", "1"))),
    "state_overtime_rules": os.getenv("DEFAULT_OVERTIME_RULES", "federal"),
    "weekly_overtime_threshold_hours": float(os.getenv("DEFAULT_WEEKLY_OVERTIME_HOURS", "40")),
    "auto_clock_out_hours": float(os.getenv("DEFAULT_AUTO_CLOCK_OUT_HOURS", "16")),
}
