#!/usr/bin/env python3
"""
Run every depreciation schedule that is due.

Intended for a daily cron job.  Each due schedule gets one execution record
with per-asset results; a failing asset never aborts the rest of the run.

Usage:
    python3 scripts/run_depreciation_schedules.py --actor ADMIN001 [options]

Examples:
    # Run schedules due today against the configured database
    python3 scripts/run_depreciation_schedules.py --actor ADMIN001

    # Run as of a given date, creating tables first (fresh SQLite file)
    python3 scripts/run_depreciation_schedules.py --actor ADMIN001 \\
        --as-of-date 2026-01-31 --create-tables
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Execute active depreciation schedules that are due.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--actor",
        required=True,
        help="Employee ID of the user the run is recorded against.",
    )
    parser.add_argument(
        "--as-of-date",
        type=lambda s: date.fromisoformat(s),
        default=None,
        help="Run date (YYYY-MM-DD). Default: today.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Settings YAML. Default: BACKOFFICE_SETTINGS or bundled defaults.",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before running.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log at DEBUG level.",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    from sqlalchemy import select

    from backoffice_config import get_active_settings
    from backoffice_kernel.db.engine import create_tables, init_engine_from_url, session_scope
    from backoffice_kernel.logging_config import configure_logging
    from backoffice_kernel.models.organization import User
    from backoffice_modules.depreciation.service import DepreciationService

    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)
    settings = get_active_settings(config_path=args.config)
    init_engine_from_url(
        settings.database.url,
        echo=settings.database.echo,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
    )
    if args.create_tables:
        create_tables()

    with session_scope() as session:
        user = session.execute(
            select(User).where(User.employee_id == args.actor)
        ).scalar_one_or_none()
        if user is None or not user.is_active:
            print(f"ERROR: no active user with employee ID {args.actor!r}", file=sys.stderr)
            return 2

        service = DepreciationService(session, settings=settings.depreciation)
        results = service.run_due_schedules(user.to_actor(), as_of=args.as_of_date)

    if not results:
        print("No schedules due.")
        return 0

    print(f"{'Execution':<38} {'Status':<10} {'Assets':>6} {'OK':>4} {'Fail':>4} {'Skip':>4} {'Total':>16}")
    for result in results:
        print(
            f"{str(result.execution_id):<38} {result.status.value:<10} "
            f"{result.total_assets:>6} {result.successful:>4} {result.failed:>4} "
            f"{result.skipped:>4} {result.total_depreciation:>16,.2f}"
        )
    return 1 if any(r.failed for r in results) else 0


if __name__ == "__main__":
    sys.exit(main())
