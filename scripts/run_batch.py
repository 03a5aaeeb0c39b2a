"""Cron entry point for the time clock batch jobs.

    python scripts/run_batch.py auto-clock-out --company 1
    python scripts/run_batch.py generate-periods --company 1 --start 2024-01-01 --end 2024-03-31 --frequency biweekly
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from dotenv import load_dotenv

from timekeeping.common.validators import require_date
from timekeeping.config import get_settings_module
from timekeeping.container import build_container
from timekeeping.core.enums import OutcomeStatus, PayFrequency
from timekeeping.core.exceptions import DomainError
from timekeeping.logging_config import configure_logging

logger = logging.getLogger("timekeeping.batch")


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Timekeeping batch jobs")
    sub = parser.add_subparsers(dest="command", required=True)

    auto = sub.add_parser("auto-clock-out", help="close entries left open past the policy limit")
    auto.add_argument("--company", type=int, action="append", required=True)

    gen = sub.add_parser("generate-periods", help="create pay periods for a date range")
    gen.add_argument("--company", type=int, action="append", required=True)
    gen.add_argument("--start", required=True)
    gen.add_argument("--end", required=True)
    gen.add_argument("--frequency", choices=[f.value for f in PayFrequency], default=PayFrequency.BIWEEKLY.value)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"), json_output=bool(getattr(settings, "LOG_JSON", True)))
    container = build_container(db_config=settings.DB_CONFIG, default_policy=getattr(settings, "DEFAULT_POLICY", None))

    failures = 0
    for company_id in args.company:
        try:
            if args.command == "auto-clock-out":
                outcomes = container.timeclock_service.auto_clock_out_stale_entries(company_id)
                failures += sum(1 for o in outcomes if o.status == OutcomeStatus.FAILURE)
            else:
                container.payroll_service.generate_pay_periods(
                    company_id,
                    require_date(args.start, "--start"),
                    require_date(args.end, "--end"),
                    args.frequency,
                )
        except DomainError:
            logger.exception("batch job failed", extra={"company_id": company_id, "command": args.command})
            failures += 1

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
